"""
Classes de base et mixins pour les modeles SQLAlchemy
Isolation par societe avec timestamps automatiques
Compatible SQLAlchemy 2.0 avec Mapped types
"""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT en PostgreSQL, INTEGER en SQLite (seul type auto-incremente)
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Classe de base pour tous les modeles SQLAlchemy"""
    pass


class TimestampMixin:
    """
    Mixin pour ajouter created_at et updated_at automatiques.
    updated_at est mis a jour automatiquement a chaque modification.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class CompanyMixin:
    """
    Mixin pour l'isolation par societe.
    Toutes les tables racines heritent de ce mixin, les lignes enfants
    heritent de l'isolation de leur parent.
    """
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True
    )


def utc_now() -> datetime:
    """Retourne l'heure actuelle en UTC (timezone-aware)"""
    return datetime.now(timezone.utc)
