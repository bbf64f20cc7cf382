"""
Repositories pour les comptes bancaires, transactions et regles.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Query, Session

from compta.models.bank import BankAccount, BankMatchingRule, BankTransaction
from compta.repositories.base import CompanyScopedRepository, PaginatedResult, paginate_query


class BankAccountRepository(CompanyScopedRepository[BankAccount]):
    """
    Repository pour les comptes bancaires.
    Isolation par societe obligatoire.
    """
    model = BankAccount


class BankMatchingRuleRepository(CompanyScopedRepository[BankMatchingRule]):
    """
    Repository pour les regles de rapprochement.
    """
    model = BankMatchingRule

    def get_active_ordered(self) -> List[BankMatchingRule]:
        """
        Recupere les regles actives par priorite decroissante.
        A priorite egale, la plus ancienne regle passe en premier.
        """
        return (
            self._company_query()
            .filter(BankMatchingRule.is_active.is_(True))
            .order_by(desc(BankMatchingRule.priority), BankMatchingRule.id)
            .all()
        )

    def list_ordered(self) -> List[BankMatchingRule]:
        return (
            self._company_query()
            .order_by(desc(BankMatchingRule.priority), BankMatchingRule.id)
            .all()
        )


class BankTransactionRepository:
    """
    Repository pour les transactions bancaires.

    Les transactions n'ont pas de company_id: l'isolation passe par
    la jointure sur le compte bancaire.
    """
    model = BankTransaction

    def __init__(self, session: Session, company_id: int):
        self.session = session
        self._company_id = company_id

    @property
    def company_id(self) -> int:
        return self._company_id

    def _company_query(self) -> Query:
        return (
            self.session.query(BankTransaction)
            .join(BankAccount, BankTransaction.bank_account_id == BankAccount.id)
            .filter(BankAccount.company_id == self._company_id)
        )

    def get(self, id: int) -> Optional[BankTransaction]:
        return self._company_query().filter(BankTransaction.id == id).first()

    def get_for_update(self, id: int) -> Optional[BankTransaction]:
        """Recupere la transaction en verrouillant sa ligne (FOR UPDATE)."""
        return (
            self._company_query()
            .filter(BankTransaction.id == id)
            .populate_existing()
            .with_for_update(of=BankTransaction)
            .first()
        )

    def create(self, data: Dict[str, Any]) -> BankTransaction:
        """Cree une transaction (le compte doit deja etre verifie)."""
        obj = BankTransaction(**data)
        self.session.add(obj)
        self.session.flush()
        return obj

    def list_by_account(
        self,
        bank_account_id: int,
        page: int = 1,
        page_size: int = 20
    ) -> PaginatedResult[BankTransaction]:
        """Transactions d'un compte, plus recentes d'abord."""
        query = (
            self._company_query()
            .filter(BankTransaction.bank_account_id == bank_account_id)
            .order_by(desc(BankTransaction.transaction_date), desc(BankTransaction.id))
        )
        return paginate_query(query, page, page_size)
