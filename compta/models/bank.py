"""
Comptes bancaires, transactions bancaires et regles de rapprochement.
"""
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING
import enum

from sqlalchemy import BigInteger, Boolean, Date, DateTime, ForeignKey, Index, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compta.models.base import Base, BigIntPK, CompanyMixin, TimestampMixin

if TYPE_CHECKING:
    from compta.models.accounting import Account


class MatchedType(str, enum.Enum):
    """Nature du document rapproche."""
    CLIENT = "client"
    SUPPLIER = "supplier"


class TransactionSource(str, enum.Enum):
    """Origine d'une transaction bancaire."""
    IMPORT = "import"
    MANUAL = "manual"


class BankAccount(Base, TimestampMixin, CompanyMixin):
    """
    Compte bancaire de la societe.
    current_balance n'est modifie que dans l'unite de travail qui insere
    les transactions correspondantes.
    """
    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    bank_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(Text, default="XOF", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Solde courant signe (en unites minimales)
    current_balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<BankAccount(id={self.id}, name={self.name}, balance={self.current_balance})>"


class BankMatchingRule(Base, TimestampMixin, CompanyMixin):
    """
    Regle de rapprochement automatique.
    Evaluee par priorite decroissante, la premiere regle satisfaite gagne.
    """
    __tablename__ = "bank_matching_rules"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Conditions (toutes celles renseignees doivent etre satisfaites)
    label_contains: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount_min: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    amount_max: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    amount_equals: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Action
    assign_account_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True
    )
    auto_reconcile: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    assign_account: Mapped[Optional["Account"]] = relationship("Account")

    __table_args__ = (
        Index("ix_bank_matching_rules_company_priority", "company_id", "is_active", "priority"),
    )

    def __repr__(self) -> str:
        return f"<BankMatchingRule(id={self.id}, name={self.name}, priority={self.priority})>"


class BankTransaction(Base, TimestampMixin):
    """
    Operation bancaire (montant signe, positif = encaissement).
    Pas de CompanyMixin car liee a BankAccount.
    is_reconciled passe a True une seule fois et n'est jamais remis a False.
    """
    __tablename__ = "bank_transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    bank_account_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bank_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Rapprochement
    is_reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reconciled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    # Facture client ou fournisseur selon matched_type (pas de FK)
    matched_invoice_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    matched_type: Mapped[Optional[MatchedType]] = mapped_column(
        SQLEnum(
            MatchedType,
            name="matched_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls]
        ),
        nullable=True
    )

    # Affectation par regle
    assigned_account_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True
    )
    matching_rule_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("bank_matching_rules.id", ondelete="SET NULL"),
        nullable=True
    )

    source: Mapped[TransactionSource] = mapped_column(
        SQLEnum(
            TransactionSource,
            name="transaction_source",
            values_callable=lambda enum_cls: [member.value for member in enum_cls]
        ),
        default=TransactionSource.MANUAL,
        nullable=False
    )
    imported_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    bank_account: Mapped["BankAccount"] = relationship("BankAccount")

    __table_args__ = (
        Index("ix_bank_transactions_account_date", "bank_account_id", "transaction_date"),
        Index("ix_bank_transactions_account_reconciled", "bank_account_id", "is_reconciled"),
    )

    def __repr__(self) -> str:
        return f"<BankTransaction(id={self.id}, date={self.transaction_date}, amount={self.amount})>"
