"""
Schemas pour l'import bancaire, les transactions et les regles.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from compta.models.bank import MatchedType
from compta.schemas.base import BaseSchema

DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d")


def parse_transaction_date(value) -> date:
    """
    Normalise une date de releve bancaire.

    Formats acceptes: JJ/MM/AAAA et AAAA-MM-JJ (ISO).

    Raises:
        ValueError: format non reconnu ou date invalide
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"date invalide: {value!r}")

    raw = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"format de date non reconnu: {raw!r} (JJ/MM/AAAA ou AAAA-MM-JJ)")


def ensure_not_zero(amount: int) -> int:
    """Une transaction bancaire porte toujours un mouvement."""
    if amount == 0:
        raise ValueError("le montant ne peut pas etre nul")
    return amount


class BankImportRow(BaseSchema):
    """Ligne de releve bancaire a importer (montant signe)."""
    transaction_date: date = Field(alias="date")
    label: str = Field(min_length=1)
    amount: int
    reference: Optional[str] = None

    @field_validator("transaction_date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return parse_transaction_date(v)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        return ensure_not_zero(v)


class BankTransactionCreate(BaseSchema):
    """Saisie manuelle d'une transaction bancaire."""
    bank_account_id: int
    transaction_date: date
    amount: int
    label: str = Field(min_length=1)
    reference: Optional[str] = None

    @field_validator("transaction_date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return parse_transaction_date(v)

    @field_validator("amount")
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        return ensure_not_zero(v)


class MatchingRuleCreate(BaseSchema):
    """
    Creation d'une regle de rapprochement.
    Au moins une condition est requise, amount_min <= amount_max.
    """
    name: str = Field(min_length=1)
    priority: int = 0
    label_contains: Optional[str] = None
    amount_min: Optional[int] = None
    amount_max: Optional[int] = None
    amount_equals: Optional[int] = None
    assign_account_id: Optional[int] = None
    auto_reconcile: bool = False

    @field_validator("label_contains")
    @classmethod
    def empty_label_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def check_conditions(self):
        if (
            self.amount_min is not None
            and self.amount_max is not None
            and self.amount_min > self.amount_max
        ):
            raise ValueError("amount_min doit etre inferieur ou egal a amount_max")
        if all(
            value is None
            for value in (
                self.label_contains,
                self.amount_min,
                self.amount_max,
                self.amount_equals,
            )
        ):
            raise ValueError("la regle doit porter au moins une condition")
        return self


class ReconcileRequest(BaseSchema):
    """Confirmation manuelle d'un rapprochement."""
    transaction_id: int
    invoice_id: int
    invoice_type: MatchedType
