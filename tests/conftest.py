"""
Configuration globale pytest pour le noyau comptable
Fixtures partagees entre tous les tests

Environnement de test (ENV=test):
- Tests unitaires: repositories remplaces par des MagicMock, pas de DB
- Tests d'integration: base SQLite fichier par test (tmp_path), schema cree
  via Base.metadata. Les transactions SQLite demarrent en BEGIN IMMEDIATE,
  ce qui permet de tester les acces concurrents avec plusieurs sessions.
"""
import os
from datetime import date
from typing import Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

# Configuration environnement de test (avant tout import de compta)
os.environ["ENV"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MECEF_ENABLED"] = "false"
os.environ["LEDGER_STRICT_POSTING"] = "true"

from compta.core.config import Settings, get_settings  # noqa: E402
from compta.core.database import create_db_engine  # noqa: E402
from compta.models import Base  # noqa: E402
from compta.services import build_services  # noqa: E402
from compta.services.billing.certification import SimulatedCertifier  # noqa: E402

COMPANY_ID = 1
OTHER_COMPANY_ID = 2


# ============================================
# Configuration Base de Donnees Test
# ============================================

@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Settings pour environnement de test"""
    return get_settings()


@pytest.fixture
def db_engine(tmp_path):
    """
    Engine SQLAlchemy sur une base SQLite fichier, isolee par test.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'compta_test.db'}")
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Fabrique de sessions (une session par thread dans les tests concurrents)."""
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Session de DB pour les tests d'integration."""
    session = session_factory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def company_id() -> int:
    return COMPANY_ID


@pytest.fixture
def services(db_session: Session):
    """Services cables pour la societe de test, certification simulee."""
    return build_services(db_session, COMPANY_ID, certifier=SimulatedCertifier())


@pytest.fixture
def ledger_ready(services, db_session: Session):
    """
    Plan comptable par defaut + exercice 2025 ouvert.

    Returns:
        L'exercice cree
    """
    services.chart.seed_default_chart()
    return services.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))


# ============================================
# Markers pytest
# ============================================

def pytest_configure(config):
    """Configuration des markers personnalises"""
    config.addinivalue_line(
        "markers", "unit: Tests unitaires (pas de DB)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests integration (avec DB)"
    )
    config.addinivalue_line(
        "markers", "slow: Tests lents (> 1s)"
    )
