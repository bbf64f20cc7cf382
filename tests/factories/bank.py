"""
Factories pour les comptes, transactions et regles bancaires.
"""
from datetime import date

from factory import Faker, Sequence

from compta.models.bank import (
    BankAccount,
    BankMatchingRule,
    BankTransaction,
    TransactionSource,
)
from tests.factories.base import SessionFactory


class BankAccountFactory(SessionFactory):

    class Meta:
        model = BankAccount

    company_id = 1
    name = Sequence(lambda n: f"Compte courant {n}")
    bank_name = Faker("company", locale="fr_FR")
    currency = "XOF"
    is_active = True
    current_balance = 0


class BankTransactionFactory(SessionFactory):
    """Encaissement non rapproche de 100000. bank_account_id a fournir."""

    class Meta:
        model = BankTransaction

    transaction_date = date(2025, 3, 15)
    label = Sequence(lambda n: f"VIR RECU {n}")
    amount = 100000
    reference = None
    is_reconciled = False
    source = TransactionSource.MANUAL


class BankMatchingRuleFactory(SessionFactory):

    class Meta:
        model = BankMatchingRule

    company_id = 1
    name = Sequence(lambda n: f"Regle {n}")
    priority = 0
    label_contains = None
    amount_min = None
    amount_max = None
    amount_equals = None
    assign_account_id = None
    auto_reconcile = False
    is_active = True
