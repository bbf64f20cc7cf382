"""
Schemas pour les paiements de factures.
"""
from datetime import date
from typing import Optional

from pydantic import Field

from compta.models.billing import PaymentMethod
from compta.schemas.base import BaseSchema


class PaymentCreate(BaseSchema):
    """Paiement d'une facture client ou fournisseur."""
    invoice_id: int
    amount: int = Field(gt=0)
    payment_date: date
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = None
    notes: Optional[str] = None
