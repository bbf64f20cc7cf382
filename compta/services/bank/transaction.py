"""
Saisie ponctuelle de transactions bancaires et pre-rapprochement.

Le pre-rapprochement (soft-match) propose une facture sans rapprocher:
la transaction reste is_reconciled = False jusqu'a confirmation manuelle.
"""
import logging
from datetime import date
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from compta.core.database import transactional
from compta.core.exceptions import AppException, NotFound
from compta.core.logging import LogContext
from compta.models.bank import BankTransaction, MatchedType, TransactionSource
from compta.models.billing import CLIENT_OPEN_STATUSES, SUPPLIER_OPEN_STATUSES
from compta.repositories.bank import BankAccountRepository, BankTransactionRepository
from compta.repositories.billing import InvoiceRepository, SupplierInvoiceRepository
from compta.schemas.base import validate_input
from compta.schemas.bank import BankTransactionCreate

logger = logging.getLogger(__name__)


def suggest_match(candidates: Sequence, label: str):
    """
    Choisit un document parmi des candidats de meme montant.

    Le premier candidat dont le numero apparait dans le libelle (casse
    ignoree) gagne; sinon un candidat unique est retenu; sinon None.
    """
    label_lower = (label or "").lower()
    for candidate in candidates:
        if candidate.number and candidate.number.lower() in label_lower:
            return candidate
    if len(candidates) == 1:
        return candidates[0]
    return None


class BankTransactionService:
    """
    Creation manuelle de transactions bancaires.
    """

    def __init__(
        self,
        session,
        bank_account_repository: BankAccountRepository,
        transaction_repository: BankTransactionRepository,
        invoice_repository: InvoiceRepository,
        supplier_invoice_repository: SupplierInvoiceRepository,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.bank_account_repository = bank_account_repository
        self.transaction_repository = transaction_repository
        self.invoice_repository = invoice_repository
        self.supplier_invoice_repository = supplier_invoice_repository

    def create_transaction(
        self,
        bank_account_id: int,
        transaction_date: date,
        amount: int,
        label: str,
        reference: Optional[str] = None,
    ) -> BankTransaction:
        """
        Insere la transaction et met a jour le solde (atomique), puis tente
        un pre-rapprochement dans une unite separee.

        Raises:
            ValidationError: montant nul, date ou libelle invalide
            NotFound: compte bancaire inexistant
        """
        data = validate_input(BankTransactionCreate, {
            "bank_account_id": bank_account_id,
            "transaction_date": transaction_date,
            "amount": amount,
            "label": label,
            "reference": reference,
        })

        with transactional(self.session, self.context):
            account = self.bank_account_repository.get_for_update(data.bank_account_id)
            if account is None:
                raise NotFound("Compte bancaire", data.bank_account_id)

            transaction = self.transaction_repository.create({
                "bank_account_id": account.id,
                "transaction_date": data.transaction_date,
                "label": data.label,
                "amount": data.amount,
                "reference": data.reference,
                "is_reconciled": False,
                "source": TransactionSource.MANUAL,
            })
            account.current_balance += data.amount
            self.session.flush()

            logger.info(
                f"Transaction {transaction.id} de {transaction.amount} creee "
                f"sur le compte {bank_account_id}"
            )

        # Un echec n'annule que le savepoint: le commit externe ferme
        # toujours la transaction et la ligne retournee reste chargee.
        with transactional(self.session, self.context):
            try:
                with self.session.begin_nested():
                    self.soft_match(transaction.id)
            except (AppException, SQLAlchemyError) as exc:
                logger.warning(
                    f"Pre-rapprochement de la transaction {transaction.id} abandonne: {exc}"
                )
                self.session.refresh(transaction)

        return transaction

    def soft_match(self, transaction_id: int) -> Optional[BankTransaction]:
        """
        Associe la transaction a une facture ouverte de meme montant TTC.
        Sortie (montant negatif) -> facture fournisseur, entree -> client.

        Returns:
            La transaction si une facture a ete retenue, None sinon
        """
        transaction = self.transaction_repository.get_for_update(transaction_id)
        if transaction is None or transaction.is_reconciled:
            return None

        amount = abs(transaction.amount)
        if transaction.amount < 0:
            candidates = self.supplier_invoice_repository.get_open_by_total(
                amount, SUPPLIER_OPEN_STATUSES
            )
            matched_type = MatchedType.SUPPLIER
        else:
            candidates = self.invoice_repository.get_open_by_total(
                amount, CLIENT_OPEN_STATUSES
            )
            matched_type = MatchedType.CLIENT

        chosen = suggest_match(candidates, transaction.label)
        if chosen is None:
            if candidates:
                logger.debug(
                    f"Transaction {transaction_id}: {len(candidates)} candidats, "
                    "aucun pre-rapprochement"
                )
            return None

        transaction.matched_invoice_id = chosen.id
        transaction.matched_type = matched_type
        self.session.flush()

        logger.info(
            f"Transaction {transaction_id} pre-rapprochee avec la facture {chosen.number}",
            extra={"matched_type": matched_type.value},
        )
        return transaction
