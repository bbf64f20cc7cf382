"""
Import en masse des transactions bancaires.

Toutes les lignes sont validees avant la moindre ecriture. L'insertion des
transactions et l'increment du solde du compte forment une seule unite de
travail, sous verrou de la ligne du compte bancaire: deux imports
concurrents sur le meme compte sont serialises.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from compta.core.database import transactional
from compta.core.exceptions import NotFound
from compta.core.logging import LogContext
from compta.models.base import utc_now
from compta.models.bank import TransactionSource
from compta.repositories.bank import (
    BankAccountRepository,
    BankMatchingRuleRepository,
    BankTransactionRepository,
)
from compta.schemas.base import validate_input
from compta.schemas.bank import BankImportRow
from compta.services.bank.rules import match_rule

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Resultat d'un import de releve."""
    imported_count: int
    new_balance: int
    assigned_count: int = 0
    transaction_ids: List[int] = field(default_factory=list)


class BankImportService:
    """
    Service d'import de releves bancaires.
    """

    def __init__(
        self,
        session,
        bank_account_repository: BankAccountRepository,
        transaction_repository: BankTransactionRepository,
        rule_repository: BankMatchingRuleRepository,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.bank_account_repository = bank_account_repository
        self.transaction_repository = transaction_repository
        self.rule_repository = rule_repository

    def import_transactions(self, bank_account_id: int, rows: Iterable[Any]) -> ImportResult:
        """
        Importe des lignes de releve (date, label, amount signe, reference).

        Args:
            bank_account_id: Compte bancaire cible
            rows: dicts ou BankImportRow, dans l'ordre du releve

        Returns:
            ImportResult(imported_count, new_balance, assigned_count)

        Raises:
            ValidationError: ligne invalide (le message nomme la ligne)
            NotFound: compte bancaire inexistant dans la societe
        """
        parsed = [
            validate_input(BankImportRow, row, context=f"Ligne {index}")
            for index, row in enumerate(rows, start=1)
        ]

        with transactional(self.session, self.context):
            account = self.bank_account_repository.get_for_update(bank_account_id)
            if account is None:
                raise NotFound("Compte bancaire", bank_account_id)

            if not parsed:
                return ImportResult(imported_count=0, new_balance=account.current_balance)

            rules = self.rule_repository.get_active_ordered()
            imported_at = utc_now()
            transaction_ids = []
            assigned_count = 0

            for row in parsed:
                rule = match_rule(rules, row.label, row.amount)
                if rule is not None and rule.assign_account_id is not None:
                    assigned_count += 1
                transaction = self.transaction_repository.create({
                    "bank_account_id": account.id,
                    "transaction_date": row.transaction_date,
                    "label": row.label,
                    "amount": row.amount,
                    "reference": row.reference,
                    "is_reconciled": False,
                    "assigned_account_id": rule.assign_account_id if rule else None,
                    "matching_rule_id": rule.id if rule else None,
                    "source": TransactionSource.IMPORT,
                    "imported_at": imported_at,
                })
                transaction_ids.append(transaction.id)

            account.current_balance += sum(row.amount for row in parsed)
            self.session.flush()
            new_balance = account.current_balance

            logger.info(
                f"Import de {len(parsed)} transaction(s) sur le compte {bank_account_id}, "
                f"{assigned_count} affectee(s) par regle",
                extra={"bank_account_id": bank_account_id, "new_balance": new_balance},
            )

        return ImportResult(
            imported_count=len(parsed),
            new_balance=new_balance,
            assigned_count=assigned_count,
            transaction_ids=transaction_ids,
        )
