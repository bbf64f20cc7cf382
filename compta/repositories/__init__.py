"""
Repositories du noyau comptable.
"""
from compta.repositories.base import (
    BaseRepository,
    CompanyScopedRepository,
    PaginatedResult,
    PaginationError,
)
from compta.repositories.accounting import (
    AccountRepository,
    FiscalYearRepository,
    JournalEntryRepository,
)
from compta.repositories.billing import (
    InvoiceRepository,
    PaymentRepository,
    SupplierInvoiceRepository,
    SupplierPaymentRepository,
)
from compta.repositories.bank import (
    BankAccountRepository,
    BankMatchingRuleRepository,
    BankTransactionRepository,
)

__all__ = [
    "BaseRepository",
    "CompanyScopedRepository",
    "PaginatedResult",
    "PaginationError",
    "AccountRepository",
    "FiscalYearRepository",
    "JournalEntryRepository",
    "InvoiceRepository",
    "PaymentRepository",
    "SupplierInvoiceRepository",
    "SupplierPaymentRepository",
    "BankAccountRepository",
    "BankMatchingRuleRepository",
    "BankTransactionRepository",
]
