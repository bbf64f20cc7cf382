"""
Rapprochement manuel d'une transaction bancaire avec une facture.

Le rapprochement passe par le meme chemin que l'application d'un paiement:
controle du reste a payer, mise a jour du statut et ecriture au journal de
banque. La transaction est verrouillee pendant toute l'unite de travail,
deux confirmations concurrentes donnent un succes et un Conflict.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from compta.core.database import transactional
from compta.core.exceptions import Conflict, NotFound, ValidationError
from compta.core.logging import LogContext
from compta.models.bank import BankTransaction, MatchedType
from compta.models.base import utc_now
from compta.models.billing import (
    Invoice,
    Payment,
    PaymentMethod,
    SupplierInvoice,
    SupplierPayment,
)
from compta.repositories.bank import BankTransactionRepository
from compta.schemas.base import validate_input
from compta.schemas.bank import ReconcileRequest
from compta.services.billing.payment import PaymentApplicationService

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    transaction: BankTransaction
    payment: Union[Payment, SupplierPayment]
    invoice: Union[Invoice, SupplierInvoice]


class ReconciliationService:
    """
    Confirmation d'un rapprochement: transforme une correspondance en
    paiement enregistre.
    """

    def __init__(
        self,
        session,
        transaction_repository: BankTransactionRepository,
        payment_service: PaymentApplicationService,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.transaction_repository = transaction_repository
        self.payment_service = payment_service

    def reconcile(
        self,
        transaction_id: int,
        invoice_id: int,
        invoice_type: Union[MatchedType, str],
    ) -> ReconciliationResult:
        """
        Rapproche une transaction et une facture client ou fournisseur.

        Raises:
            ValidationError: invoice_type invalide, sens du montant incompatible
                avec le type de facture, facture non payable ou montant
                superieur au reste a payer
            NotFound: transaction ou facture inexistante
            Conflict: transaction deja rapprochee
            PostingSkipped: exercice ou compte manquant
        """
        request = validate_input(ReconcileRequest, {
            "transaction_id": transaction_id,
            "invoice_id": invoice_id,
            "invoice_type": invoice_type,
        })

        with transactional(self.session, self.context):
            transaction = self.transaction_repository.get_for_update(request.transaction_id)
            if transaction is None:
                raise NotFound("Transaction", request.transaction_id)
            if transaction.is_reconciled:
                raise Conflict(f"Transaction {transaction.id} deja rapprochee")
            # Sortie de fonds -> fournisseur, entree -> client
            if (transaction.amount < 0) != (request.invoice_type == MatchedType.SUPPLIER):
                raise ValidationError(
                    f"Transaction {transaction.id} de {transaction.amount} incompatible "
                    f"avec une facture {request.invoice_type.value}",
                    details={
                        "amount": transaction.amount,
                        "invoice_type": request.invoice_type.value,
                    },
                )

            payment_kwargs = {
                "amount": abs(transaction.amount),
                "payment_date": transaction.transaction_date,
                "method": PaymentMethod.BANK_TRANSFER,
                "reference": transaction.reference or transaction.label,
                "notes": f"Rapprochement bancaire - transaction {transaction.id}",
                "bank_transaction_id": transaction.id,
            }
            if request.invoice_type == MatchedType.CLIENT:
                payment = self.payment_service.apply_client_payment_in_unit(
                    invoice_id=request.invoice_id, **payment_kwargs
                )
                invoice = payment.invoice
            else:
                payment = self.payment_service.apply_supplier_payment_in_unit(
                    supplier_invoice_id=request.invoice_id, **payment_kwargs
                )
                invoice = payment.supplier_invoice

            transaction.is_reconciled = True
            transaction.reconciled_at = utc_now()
            transaction.matched_invoice_id = request.invoice_id
            transaction.matched_type = request.invoice_type
            self.session.flush()

            logger.info(
                f"Transaction {transaction.id} rapprochee avec la facture "
                f"{request.invoice_type.value} {request.invoice_id}",
                extra={"payment_id": payment.id},
            )

        return ReconciliationResult(transaction=transaction, payment=payment, invoice=invoice)
