"""
Application des paiements aux factures clients et fournisseurs.

Dans une seule unite de travail: verrou de la facture, calcul du reste a
payer depuis les paiements deja enregistres, creation du paiement, mise a
jour de amount_paid et du statut, ecriture comptable. Tout echec annule
l'ensemble.
"""
import logging
from datetime import date
from typing import Optional

from compta.core.database import transactional
from compta.core.exceptions import NotFound, ValidationError
from compta.core.logging import LogContext
from compta.models.billing import (
    CLIENT_UNPAYABLE_STATUSES,
    SUPPLIER_UNPAYABLE_STATUSES,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    SupplierInvoiceStatus,
    SupplierPayment,
)
from compta.repositories.billing import (
    InvoiceRepository,
    PaymentRepository,
    SupplierInvoiceRepository,
    SupplierPaymentRepository,
)
from compta.schemas.base import validate_input
from compta.schemas.billing import PaymentCreate
from compta.services.accounting.ledger import LedgerPoster

logger = logging.getLogger(__name__)


def check_amount_within_remaining(amount: int, total_ttc: int, total_paid: int) -> int:
    """
    Verifie 0 < amount <= reste a payer.

    Returns:
        Le reste a payer avant ce paiement

    Raises:
        ValidationError: details["remaining"] porte le reste a payer
    """
    remaining = total_ttc - total_paid
    if amount <= 0:
        raise ValidationError(
            "Le montant du paiement doit etre positif",
            details={"remaining": remaining},
        )
    if amount > remaining:
        raise ValidationError(
            f"Le montant depasse le solde restant ({remaining})",
            details={"remaining": remaining},
        )
    return remaining


class PaymentApplicationService:
    """
    Service d'application des paiements.

    Les methodes *_in_unit ne committent pas: elles sont appelees a
    l'interieur d'une unite de travail deja ouverte (rapprochement bancaire).
    """

    def __init__(
        self,
        session,
        invoice_repository: InvoiceRepository,
        payment_repository: PaymentRepository,
        supplier_invoice_repository: SupplierInvoiceRepository,
        supplier_payment_repository: SupplierPaymentRepository,
        ledger_poster: LedgerPoster,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.invoice_repository = invoice_repository
        self.payment_repository = payment_repository
        self.supplier_invoice_repository = supplier_invoice_repository
        self.supplier_payment_repository = supplier_payment_repository
        self.ledger_poster = ledger_poster

    # =========================================================================
    # Factures clients
    # =========================================================================

    def apply_payment(
        self,
        invoice_id: int,
        amount: int,
        payment_date: date,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Enregistre un paiement sur une facture client.

        Raises:
            NotFound: facture inexistante dans la societe
            ValidationError: statut non payable, montant invalide ou
                superieur au reste a payer
            PostingSkipped: exercice ou compte manquant
        """
        data = validate_input(PaymentCreate, {
            "invoice_id": invoice_id,
            "amount": amount,
            "payment_date": payment_date,
            "payment_method": method,
            "reference": reference,
            "notes": notes,
        })

        with transactional(self.session, self.context):
            payment = self.apply_client_payment_in_unit(
                invoice_id=data.invoice_id,
                amount=data.amount,
                payment_date=data.payment_date,
                method=data.payment_method,
                reference=data.reference,
                notes=data.notes,
            )

            logger.info(
                f"Paiement {payment.id} de {payment.amount} applique a la facture {invoice_id}",
                extra={"invoice_id": invoice_id, "payment_id": payment.id},
            )

        return payment

    def apply_client_payment_in_unit(
        self,
        invoice_id: int,
        amount: int,
        payment_date: date,
        method: PaymentMethod,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        bank_transaction_id: Optional[int] = None,
    ) -> Payment:
        invoice = self.invoice_repository.get_for_update(invoice_id)
        if invoice is None:
            raise NotFound("Facture", invoice_id)

        if invoice.status in CLIENT_UNPAYABLE_STATUSES:
            raise ValidationError(
                f"La facture {invoice.number} n'est pas payable (statut {invoice.status.value})"
            )

        total_paid = self.payment_repository.get_total_by_invoice(invoice.id)
        check_amount_within_remaining(amount, invoice.total_ttc, total_paid)

        payment = self.payment_repository.create({
            "invoice_id": invoice.id,
            "amount": amount,
            "payment_date": payment_date,
            "payment_method": method,
            "reference": reference or f"PAY-{invoice.number}",
            "notes": notes,
            "bank_transaction_id": bank_transaction_id,
        })

        invoice.amount_paid = total_paid + amount
        invoice.status = (
            InvoiceStatus.PAID
            if invoice.amount_paid >= invoice.total_ttc
            else InvoiceStatus.PARTIALLY_PAID
        )
        self.session.flush()

        self.ledger_poster.post_client_payment(invoice, payment)
        return payment

    # =========================================================================
    # Factures fournisseurs
    # =========================================================================

    def apply_supplier_payment(
        self,
        supplier_invoice_id: int,
        amount: int,
        payment_date: date,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SupplierPayment:
        """
        Enregistre un reglement sur une facture fournisseur approuvee.

        Raises:
            NotFound, ValidationError, PostingSkipped
        """
        data = validate_input(PaymentCreate, {
            "invoice_id": supplier_invoice_id,
            "amount": amount,
            "payment_date": payment_date,
            "payment_method": method,
            "reference": reference,
            "notes": notes,
        })

        with transactional(self.session, self.context):
            payment = self.apply_supplier_payment_in_unit(
                supplier_invoice_id=data.invoice_id,
                amount=data.amount,
                payment_date=data.payment_date,
                method=data.payment_method,
                reference=data.reference,
                notes=data.notes,
            )

            logger.info(
                f"Reglement fournisseur {payment.id} de {payment.amount} "
                f"applique a la facture {supplier_invoice_id}",
                extra={"supplier_invoice_id": supplier_invoice_id, "payment_id": payment.id},
            )

        return payment

    def apply_supplier_payment_in_unit(
        self,
        supplier_invoice_id: int,
        amount: int,
        payment_date: date,
        method: PaymentMethod,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        bank_transaction_id: Optional[int] = None,
    ) -> SupplierPayment:
        supplier_invoice = self.supplier_invoice_repository.get_for_update(supplier_invoice_id)
        if supplier_invoice is None:
            raise NotFound("Facture fournisseur", supplier_invoice_id)

        if supplier_invoice.status in SUPPLIER_UNPAYABLE_STATUSES:
            raise ValidationError("La facture doit etre validee avant paiement")

        total_paid = self.supplier_payment_repository.get_total_by_invoice(supplier_invoice.id)
        check_amount_within_remaining(amount, supplier_invoice.total_ttc, total_paid)

        payment = self.supplier_payment_repository.create({
            "supplier_invoice_id": supplier_invoice.id,
            "amount": amount,
            "payment_date": payment_date,
            "payment_method": method,
            "reference": reference or f"PAY-{supplier_invoice.number}",
            "notes": notes,
            "bank_transaction_id": bank_transaction_id,
        })

        supplier_invoice.amount_paid = total_paid + amount
        supplier_invoice.status = (
            SupplierInvoiceStatus.PAID
            if supplier_invoice.amount_paid >= supplier_invoice.total_ttc
            else SupplierInvoiceStatus.PARTIALLY_PAID
        )
        self.session.flush()

        self.ledger_poster.post_supplier_payment(supplier_invoice, payment)
        return payment
