"""
Factures clients, factures fournisseurs et paiements.

amount_paid est le cumul de reference des paiements appliques,
le statut en est derive. Les paiements ne sont jamais modifies ni supprimes.
"""
from datetime import date, datetime
from typing import List, Optional, TYPE_CHECKING
import enum

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Index, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compta.models.base import Base, BigIntPK, CompanyMixin, TimestampMixin

if TYPE_CHECKING:
    from compta.models.bank import BankTransaction


class InvoiceStatus(str, enum.Enum):
    """Statut d'une facture client."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class SupplierInvoiceStatus(str, enum.Enum):
    """Statut d'une facture fournisseur."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    """Mode de reglement."""
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    MOBILE_MONEY = "MOBILE_MONEY"
    CARD = "CARD"
    OTHER = "OTHER"


# Statuts pour lesquels un paiement est refuse
CLIENT_UNPAYABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})
SUPPLIER_UNPAYABLE_STATUSES = frozenset({
    SupplierInvoiceStatus.PENDING,
    SupplierInvoiceStatus.CANCELLED,
})

# Documents ouverts candidats au rapprochement
CLIENT_OPEN_STATUSES = (
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
)
SUPPLIER_OPEN_STATUSES = (
    SupplierInvoiceStatus.PENDING,
    SupplierInvoiceStatus.APPROVED,
    SupplierInvoiceStatus.PARTIALLY_PAID,
    SupplierInvoiceStatus.OVERDUE,
)


class Invoice(Base, TimestampMixin, CompanyMixin):
    """
    Facture client.
    DRAFT -> SENT (certification + ecriture de vente) -> PARTIALLY_PAID/PAID.
    """
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    number: Mapped[str] = mapped_column(Text, nullable=False)
    client_name: Mapped[str] = mapped_column(Text, nullable=False)
    client_ifu: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Montants (en unites minimales)
    total_ht: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_tva: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_ttc: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    amount_paid: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus, name="invoice_status"),
        default=InvoiceStatus.DRAFT,
        nullable=False
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Certification e-MECeF
    mecef_nim: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mecef_counters: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mecef_dtc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mecef_qr_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mecef_signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relations
    lines: Mapped[List["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.id"
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        lazy="selectin"
    )

    __table_args__ = (
        Index("ix_invoices_company_status", "company_id", "status"),
        Index("ix_invoices_company_number", "company_id", "number", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.number}, status={self.status})>"


class InvoiceLine(Base, TimestampMixin):
    """
    Ligne de facture client.
    Pas de CompanyMixin car liee a Invoice.
    """
    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, default=1, nullable=False)
    unit_price_ht: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tva_rate: Mapped[int] = mapped_column(BigInteger, default=1800, nullable=False)  # 1800 = 18%
    total_ht: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_tva: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_ttc: Mapped[int] = mapped_column(BigInteger, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")

    def __repr__(self) -> str:
        return f"<InvoiceLine(id={self.id}, description={self.description[:30]})>"


class Payment(Base, TimestampMixin):
    """
    Reglement d'une facture client.
    Pas de CompanyMixin car lie a Invoice.
    """
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    bank_transaction_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("bank_transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method"),
        nullable=False
    )
    reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="payments")
    bank_transaction: Mapped[Optional["BankTransaction"]] = relationship("BankTransaction")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, date={self.payment_date})>"


class SupplierInvoice(Base, TimestampMixin, CompanyMixin):
    """
    Facture fournisseur.
    Doit etre approuvee (APPROVED) avant tout reglement.
    """
    __tablename__ = "supplier_invoices"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    number: Mapped[str] = mapped_column(Text, nullable=False)
    supplier_name: Mapped[str] = mapped_column(Text, nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    total_ht: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_tva: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_ttc: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    amount_paid: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    status: Mapped[SupplierInvoiceStatus] = mapped_column(
        SQLEnum(SupplierInvoiceStatus, name="supplier_invoice_status"),
        default=SupplierInvoiceStatus.PENDING,
        nullable=False
    )

    payments: Mapped[List["SupplierPayment"]] = relationship(
        "SupplierPayment",
        back_populates="supplier_invoice",
        lazy="selectin"
    )

    __table_args__ = (
        Index("ix_supplier_invoices_company_status", "company_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<SupplierInvoice(id={self.id}, number={self.number}, status={self.status})>"


class SupplierPayment(Base, TimestampMixin):
    """
    Reglement d'une facture fournisseur.
    Pas de CompanyMixin car lie a SupplierInvoice.
    """
    __tablename__ = "supplier_payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    supplier_invoice_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("supplier_invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    bank_transaction_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("bank_transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method"),
        nullable=False
    )
    reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    supplier_invoice: Mapped["SupplierInvoice"] = relationship(
        "SupplierInvoice",
        back_populates="payments"
    )
    bank_transaction: Mapped[Optional["BankTransaction"]] = relationship("BankTransaction")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_supplier_payments_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<SupplierPayment(id={self.id}, amount={self.amount}, date={self.payment_date})>"
