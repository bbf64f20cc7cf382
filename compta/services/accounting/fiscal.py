"""
Exercices comptables: resolution de l'exercice ouvert et gestion.
"""
import logging
from datetime import date
from typing import Optional

from compta.core.database import transactional
from compta.core.exceptions import Conflict, NotFound, PostingSkipped, ValidationError
from compta.core.logging import LogContext
from compta.models.accounting import FiscalYear
from compta.models.base import utc_now
from compta.repositories.accounting import FiscalYearRepository

logger = logging.getLogger(__name__)


class NoOpenFiscalYearError(PostingSkipped):
    """Aucun exercice ouvert ne couvre la date."""
    error_code = "NO_OPEN_FISCAL_YEAR"

    def __init__(self, on_date: date):
        super().__init__(
            message=f"Aucun exercice ouvert pour la date {on_date.isoformat()}",
            details={"date": on_date.isoformat()},
        )
        self.on_date = on_date


class AmbiguousFiscalYearError(PostingSkipped):
    """Plusieurs exercices ouverts couvrent la date (donnees incoherentes)."""
    error_code = "AMBIGUOUS_FISCAL_YEAR"

    def __init__(self, on_date: date, fiscal_year_ids: list):
        super().__init__(
            message=(
                f"Plusieurs exercices ouverts couvrent la date {on_date.isoformat()}: "
                f"{fiscal_year_ids}"
            ),
            details={"date": on_date.isoformat(), "fiscal_year_ids": fiscal_year_ids},
        )


class FiscalPeriodResolver:
    """Trouve l'exercice ouvert d'une societe pour une date."""

    def __init__(self, fiscal_year_repository: FiscalYearRepository):
        self.fiscal_year_repository = fiscal_year_repository

    def find_open(self, on_date: date) -> Optional[FiscalYear]:
        """
        Retourne l'exercice ouvert contenant la date, ou None.

        Raises:
            AmbiguousFiscalYearError: si plusieurs exercices correspondent
        """
        matches = self.fiscal_year_repository.find_open_for_date(on_date)
        if len(matches) > 1:
            raise AmbiguousFiscalYearError(on_date, [fy.id for fy in matches])
        return matches[0] if matches else None

    def resolve(self, on_date: date) -> FiscalYear:
        """
        Comme find_open mais leve une erreur si aucun exercice.

        Raises:
            NoOpenFiscalYearError
            AmbiguousFiscalYearError
        """
        fiscal_year = self.find_open(on_date)
        if fiscal_year is None:
            raise NoOpenFiscalYearError(on_date)
        return fiscal_year


class FiscalYearService:
    """
    Creation et cloture des exercices.
    Les exercices d'une societe ne se chevauchent jamais.
    """

    def __init__(
        self,
        session,
        fiscal_year_repository: FiscalYearRepository,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.fiscal_year_repository = fiscal_year_repository

    def create_fiscal_year(self, start_date: date, end_date: date) -> FiscalYear:
        """
        Raises:
            ValidationError: start_date > end_date
            Conflict: chevauchement avec un exercice existant
        """
        if start_date > end_date:
            raise ValidationError(
                "La date de debut doit preceder la date de fin de l'exercice"
            )

        with transactional(self.session, self.context):
            overlapping = self.fiscal_year_repository.find_overlapping(start_date, end_date)
            if overlapping:
                raise Conflict(
                    "L'exercice chevauche un exercice existant",
                    details={"fiscal_year_ids": [fy.id for fy in overlapping]},
                )
            fiscal_year = self.fiscal_year_repository.create({
                "start_date": start_date,
                "end_date": end_date,
                "is_closed": False,
            })

            logger.info(f"Exercice cree: {start_date} -> {end_date} (id={fiscal_year.id})")

        return fiscal_year

    def close_fiscal_year(self, fiscal_year_id: int) -> FiscalYear:
        """
        Cloture un exercice: plus aucune ecriture ne peut y etre passee.

        Raises:
            NotFound: exercice inexistant
            Conflict: exercice deja clos
        """
        with transactional(self.session, self.context):
            fiscal_year = self.fiscal_year_repository.get_for_update(fiscal_year_id)
            if fiscal_year is None:
                raise NotFound("Exercice", fiscal_year_id)
            if fiscal_year.is_closed:
                raise Conflict(f"L'exercice {fiscal_year_id} est deja clos")
            fiscal_year.is_closed = True
            fiscal_year.closed_at = utc_now()
            self.session.flush()

            logger.info(f"Exercice {fiscal_year_id} clos")

        return fiscal_year
