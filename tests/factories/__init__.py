"""
Factories FactoryBoy pour les tests.

Ces factories creent des objets de test avec des valeurs realistes,
independamment de tout seed.

Usage:
    from tests.factories import InvoiceFactory, BankAccountFactory

    invoice = InvoiceFactory.create(db_session=session, total_ttc=100000)
    account = BankAccountFactory.create(db_session=session, current_balance=10000)
"""
from tests.factories.accounting import AccountFactory, FiscalYearFactory
from tests.factories.billing import (
    InvoiceFactory,
    InvoiceLineFactory,
    SupplierInvoiceFactory,
)
from tests.factories.bank import (
    BankAccountFactory,
    BankMatchingRuleFactory,
    BankTransactionFactory,
)

__all__ = [
    "AccountFactory",
    "FiscalYearFactory",
    "InvoiceFactory",
    "InvoiceLineFactory",
    "SupplierInvoiceFactory",
    "BankAccountFactory",
    "BankMatchingRuleFactory",
    "BankTransactionFactory",
]
