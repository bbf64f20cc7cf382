"""
Repositories pour le plan comptable, les exercices et les ecritures.
"""
from datetime import date
from typing import Iterable, List, Optional

from compta.models.accounting import Account, FiscalYear, JournalEntry, JournalLine
from compta.repositories.base import CompanyScopedRepository


class AccountRepository(CompanyScopedRepository[Account]):
    """
    Repository pour les comptes du plan comptable.
    Isolation par societe obligatoire.
    """
    model = Account

    def get_by_code(self, code: str) -> Optional[Account]:
        """Recupere un compte par son code."""
        return self._company_query().filter(Account.code == code).first()

    def get_by_codes(self, codes: Iterable[str]) -> List[Account]:
        """Recupere tous les comptes dont le code est dans la liste."""
        codes = list(codes)
        if not codes:
            return []
        return self._company_query().filter(Account.code.in_(codes)).all()

    def list_ordered(self) -> List[Account]:
        return self._company_query().order_by(Account.code).all()

    def is_referenced(self, account_id: int) -> bool:
        """True si au moins une ligne d'ecriture mouvemente le compte."""
        return (
            self.session.query(JournalLine.id)
            .filter(JournalLine.account_id == account_id)
            .first()
        ) is not None


class FiscalYearRepository(CompanyScopedRepository[FiscalYear]):
    """
    Repository pour les exercices comptables.
    """
    model = FiscalYear

    def find_open_for_date(self, on_date: date) -> List[FiscalYear]:
        """
        Recupere les exercices ouverts contenant la date.
        Plus d'un resultat signale des donnees incoherentes.
        """
        return (
            self._company_query()
            .filter(
                FiscalYear.is_closed.is_(False),
                FiscalYear.start_date <= on_date,
                FiscalYear.end_date >= on_date,
            )
            .order_by(FiscalYear.start_date)
            .all()
        )

    def find_overlapping(self, start_date: date, end_date: date) -> List[FiscalYear]:
        """Recupere les exercices (ouverts ou clos) chevauchant la periode."""
        return (
            self._company_query()
            .filter(
                FiscalYear.start_date <= end_date,
                FiscalYear.end_date >= start_date,
            )
            .all()
        )


class JournalEntryRepository(CompanyScopedRepository[JournalEntry]):
    """
    Repository pour les ecritures comptables.
    Pas de update: une ecriture est immuable.
    """
    model = JournalEntry

