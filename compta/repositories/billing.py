"""
Repositories pour les factures clients/fournisseurs et leurs paiements.
"""
from typing import List, Sequence

from sqlalchemy import func

from compta.models.billing import (
    Invoice,
    Payment,
    SupplierInvoice,
    SupplierPayment,
)
from compta.repositories.base import BaseRepository, CompanyScopedRepository


class InvoiceRepository(CompanyScopedRepository[Invoice]):
    """
    Repository pour les factures clients.
    Isolation par societe obligatoire.
    """
    model = Invoice

    def get_open_by_total(self, total_ttc: int, statuses: Sequence) -> List[Invoice]:
        """Recupere les factures ouvertes dont le TTC est exactement total_ttc."""
        return (
            self._company_query()
            .filter(
                Invoice.status.in_(list(statuses)),
                Invoice.total_ttc == total_ttc,
            )
            .order_by(Invoice.issue_date, Invoice.id)
            .all()
        )


class SupplierInvoiceRepository(CompanyScopedRepository[SupplierInvoice]):
    """
    Repository pour les factures fournisseurs.
    """
    model = SupplierInvoice

    def get_open_by_total(self, total_ttc: int, statuses: Sequence) -> List[SupplierInvoice]:
        """Recupere les factures fournisseurs ouvertes de TTC total_ttc."""
        return (
            self._company_query()
            .filter(
                SupplierInvoice.status.in_(list(statuses)),
                SupplierInvoice.total_ttc == total_ttc,
            )
            .order_by(SupplierInvoice.issue_date, SupplierInvoice.id)
            .all()
        )


class PaymentRepository(BaseRepository[Payment]):
    """
    Repository pour les paiements clients.
    Pas d'isolation directe: passe toujours par une facture deja filtree.
    """
    model = Payment

    def get_total_by_invoice(self, invoice_id: int) -> int:
        """Somme des paiements enregistres pour la facture."""
        total = (
            self.session.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.invoice_id == invoice_id)
            .scalar()
        )
        return int(total or 0)


class SupplierPaymentRepository(BaseRepository[SupplierPayment]):
    """
    Repository pour les paiements fournisseurs.
    """
    model = SupplierPayment

    def get_total_by_invoice(self, supplier_invoice_id: int) -> int:
        total = (
            self.session.query(func.coalesce(func.sum(SupplierPayment.amount), 0))
            .filter(SupplierPayment.supplier_invoice_id == supplier_invoice_id)
            .scalar()
        )
        return int(total or 0)
