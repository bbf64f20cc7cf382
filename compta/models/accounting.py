"""
Plan comptable, exercices et ecritures en partie double.
Les montants sont en unites monetaires minimales (centimes, francs CFA).
"""
from datetime import date, datetime
from typing import List, Optional
import enum

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index,
    Integer, Text, UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compta.models.base import Base, BigIntPK, CompanyMixin, TimestampMixin


class AccountType(str, enum.Enum):
    """Classe de compte."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class JournalType(str, enum.Enum):
    """Journal auxiliaire d'une ecriture."""
    SALES = "SALES"
    PURCHASES = "PURCHASES"
    BANK = "BANK"
    CASH = "CASH"
    GENERAL = "GENERAL"


class Account(Base, TimestampMixin, CompanyMixin):
    """
    Compte du plan comptable.
    Code unique par societe, non modifiable une fois mouvemente.
    """
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[AccountType] = mapped_column(
        SQLEnum(AccountType, name="account_type"),
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_accounts_company_code"),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, code={self.code})>"


class FiscalYear(Base, TimestampMixin, CompanyMixin):
    """
    Exercice comptable.
    Les exercices d'une societe ne se chevauchent pas.
    """
    __tablename__ = "fiscal_years"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_fiscal_years_range"),
        Index("ix_fiscal_years_company_range", "company_id", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<FiscalYear(id={self.id}, {self.start_date}..{self.end_date}, closed={self.is_closed})>"


class JournalEntry(Base, TimestampMixin, CompanyMixin):
    """
    Ecriture comptable.
    Immuable: aucun chemin de modification une fois persistee.
    """
    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    fiscal_year_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("fiscal_years.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    reference: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    journal_type: Mapped[JournalType] = mapped_column(
        SQLEnum(JournalType, name="journal_type"),
        nullable=False
    )
    is_validated: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Document a l'origine de l'ecriture (invoice, payment, supplier_payment)
    source_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Relations
    fiscal_year: Mapped["FiscalYear"] = relationship("FiscalYear")
    lines: Mapped[List["JournalLine"]] = relationship(
        "JournalLine",
        back_populates="entry",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="JournalLine.position"
    )

    __table_args__ = (
        Index("ix_journal_entries_company_date", "company_id", "entry_date"),
        Index("ix_journal_entries_source", "source_type", "source_id"),
    )

    def __repr__(self) -> str:
        return f"<JournalEntry(id={self.id}, reference={self.reference}, journal={self.journal_type})>"

    @property
    def total_debit(self) -> int:
        return sum(line.debit for line in self.lines)

    @property
    def total_credit(self) -> int:
        return sum(line.credit for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        """True si debit == credit."""
        return self.total_debit == self.total_credit


class JournalLine(Base):
    """
    Ligne d'ecriture.
    Pas de CompanyMixin car liee a JournalEntry.
    """
    __tablename__ = "journal_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    account_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)

    # Montants (un seul cote non nul)
    debit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    credit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Relations
    entry: Mapped["JournalEntry"] = relationship(
        "JournalEntry",
        back_populates="lines"
    )
    account: Mapped["Account"] = relationship("Account")

    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_journal_lines_positive"),
        CheckConstraint(
            "(debit = 0) <> (credit = 0)",
            name="ck_journal_lines_one_side"
        ),
    )

    def __repr__(self) -> str:
        return f"<JournalLine(account_id={self.account_id}, debit={self.debit}, credit={self.credit})>"
