"""
Schemas Pydantic de validation des entrees.
"""
from compta.schemas.base import BaseSchema, validate_input
from compta.schemas.bank import (
    BankImportRow,
    BankTransactionCreate,
    MatchingRuleCreate,
    ReconcileRequest,
    parse_transaction_date,
)
from compta.schemas.billing import PaymentCreate

__all__ = [
    "BaseSchema",
    "validate_input",
    "BankImportRow",
    "BankTransactionCreate",
    "MatchingRuleCreate",
    "ReconcileRequest",
    "parse_transaction_date",
    "PaymentCreate",
]
