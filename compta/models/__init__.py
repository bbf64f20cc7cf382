"""
Models du noyau comptable.
Importer ce module enregistre toutes les tables sur Base.metadata.
"""
from compta.models.base import Base, CompanyMixin, TimestampMixin, utc_now
from compta.models.accounting import (
    Account,
    AccountType,
    FiscalYear,
    JournalEntry,
    JournalLine,
    JournalType,
)
from compta.models.billing import (
    Invoice,
    InvoiceLine,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    SupplierInvoice,
    SupplierInvoiceStatus,
    SupplierPayment,
)
from compta.models.bank import (
    BankAccount,
    BankMatchingRule,
    BankTransaction,
    MatchedType,
    TransactionSource,
)

__all__ = [
    # Base
    "Base",
    "CompanyMixin",
    "TimestampMixin",
    "utc_now",
    # Accounting
    "Account",
    "AccountType",
    "FiscalYear",
    "JournalEntry",
    "JournalLine",
    "JournalType",
    # Billing
    "Invoice",
    "InvoiceLine",
    "InvoiceStatus",
    "Payment",
    "PaymentMethod",
    "SupplierInvoice",
    "SupplierInvoiceStatus",
    "SupplierPayment",
    # Bank
    "BankAccount",
    "BankMatchingRule",
    "BankTransaction",
    "MatchedType",
    "TransactionSource",
]
