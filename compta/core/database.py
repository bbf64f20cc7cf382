"""
Configuration de la connexion a la base de donnees

Fournit le moteur SQLAlchemy, la fabrique de sessions et l'unite de travail
transactionnelle utilisee par tous les services.
"""
from contextlib import contextmanager, nullcontext
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from compta.core.config import get_settings
from compta.core.logging import LogContext, bind_company_context


def create_db_engine(database_url: str, **kwargs) -> Engine:
    """
    Cree le moteur SQLAlchemy pour une URL donnee.

    PostgreSQL: pool configure depuis les settings, les verrous de ligne
    (SELECT ... FOR UPDATE) serialisent les ecritures concurrentes.

    SQLite: chaque transaction demarre par BEGIN IMMEDIATE, ce qui serialise
    les ecrivains au niveau de la base (FOR UPDATE n'existe pas en SQLite).
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            **kwargs
        )
        _enable_sqlite_immediate_transactions(engine)
        return engine

    settings = get_settings()
    options = {
        "pool_pre_ping": True,  # Verifie la connexion avant utilisation
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_recycle": settings.DATABASE_POOL_RECYCLE,
    }
    options.update(kwargs)
    return create_engine(database_url, **options)


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """Remplace le BEGIN differe du driver sqlite3 par BEGIN IMMEDIATE."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Desactive la gestion implicite des transactions par sqlite3
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


settings = get_settings()

# Creer le moteur SQLAlchemy
engine = create_db_engine(settings.DATABASE_URL)

# Session locale
# expire_on_commit=False: les objets retournes par les services restent
# lisibles apres le commit sans rouvrir de transaction
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


def get_db() -> Generator[Session, None, None]:
    """
    Generateur de session de base de donnees.
    La session est toujours fermee en sortie.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transactional(
    session: Session,
    context: Optional[LogContext] = None,
) -> Iterator[Session]:
    """
    Unite de travail atomique.

    Commit si le bloc se termine normalement, rollback puis re-leve
    l'exception sinon. Aucune ecriture partielle n'est visible.
    Si un contexte est fourni, company_id/user_id sont lies aux logs
    emis pendant l'unite.

    Usage:
        with transactional(self.session, self.context):
            invoice = self.invoice_repo.get_for_update(invoice_id)
            ...
    """
    bound = (
        bind_company_context(context.company_id, context.user_id)
        if context is not None else nullcontext()
    )
    with bound:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
