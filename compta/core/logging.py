"""
Configuration du logging structure pour le noyau comptable.

Fournit un logging JSON structure avec:
- Sanitization des donnees sensibles (tokens, IBAN, secrets)
- Request ID, Company ID et User ID dans tous les logs
- Timestamps ISO 8601 UTC

Usage:
    from compta.core.logging import get_logger, bind_company_context

    logger = get_logger(__name__)
    with bind_company_context(company_id=12, user_id=3):
        logger.info("Paiement enregistre", extra={"invoice_id": 42})
"""
import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Set

from compta.core.config import Settings, get_settings

# Context variables pour la requete et la societe courante
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
company_id_var: ContextVar[int] = ContextVar("company_id", default=0)
user_id_var: ContextVar[int] = ContextVar("user_id", default=0)


# =============================================================================
# Sanitization des donnees sensibles
# =============================================================================

SENSITIVE_FIELDS: Set[str] = {
    "password",
    "token",
    "secret",
    "authorization",
    "api_key",
    "iban",
    "signature",
}

REDACTED = "[REDACTED]"


def sanitize_value(key: str, value: Any) -> Any:
    """
    Sanitize une valeur si la cle est sensible.

    Args:
        key: Nom du champ
        value: Valeur a verifier

    Returns:
        Valeur originale ou "[REDACTED]"
    """
    key_lower = key.lower()

    if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
        if isinstance(value, str) and len(value) > 8:
            # Garder les 4 premiers caracteres pour debug
            return f"{value[:4]}...{REDACTED}"
        return REDACTED

    return value


def sanitize_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Sanitize un dictionnaire en masquant les champs sensibles."""
    if not isinstance(data, dict):
        return data

    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = sanitize_dict(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_dict(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = sanitize_value(key, value)

    return result


# =============================================================================
# Formatters
# =============================================================================

_RECORD_FIELDS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "asctime", "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    Formatter qui produit des logs JSON structures.

    Inclut automatiquement le contexte (request_id, company_id, user_id)
    et les champs passes via `extra`, sanitizes.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id

        company_id = company_id_var.get()
        if company_id:
            log_entry["company_id"] = company_id

        user_id = user_id_var.get()
        if user_id:
            log_entry["user_id"] = user_id

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        }
        if extra_fields:
            log_entry["extra"] = sanitize_dict(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Formatter lisible pour la console en developpement.

    Format: [LEVEL] logger - message (company=12)
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        parts = [
            f"{color}[{record.levelname}]{self.RESET}",
            record.name,
            "-",
            record.getMessage(),
        ]

        company_id = company_id_var.get()
        if company_id:
            parts.append(f"(company={company_id})")

        return " ".join(parts)


# =============================================================================
# Configuration du logging
# =============================================================================

def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure le logging pour l'application.

    Args:
        level: Niveau de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Si True, utilise le format JSON
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(handler)

    # Reduire le bruit des librairies tierces
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Point d'entree du logging pour l'hote (worker, script, serveur).
    Applique LOG_LEVEL et LOG_JSON des settings.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)


def get_logger(name: str) -> logging.Logger:
    """Retourne un logger (typiquement get_logger(__name__))."""
    return logging.getLogger(name)


# =============================================================================
# Contexte de requete
# =============================================================================

def set_request_context(
    request_id: Optional[str] = None,
    company_id: Optional[int] = None,
    user_id: Optional[int] = None
) -> None:
    """Positionne le contexte de la requete pour les logs."""
    if request_id:
        request_id_var.set(request_id)
    if company_id:
        company_id_var.set(company_id)
    if user_id:
        user_id_var.set(user_id)


def clear_request_context() -> None:
    """Efface le contexte de la requete."""
    request_id_var.set("")
    company_id_var.set(0)
    user_id_var.set(0)


@dataclass(frozen=True)
class LogContext:
    """Identite portee par les services d'une societe."""
    company_id: int
    user_id: Optional[int] = None


@contextmanager
def bind_company_context(
    company_id: int,
    user_id: Optional[int] = None
) -> Iterator[None]:
    """
    Lie company_id/user_id aux logs le temps d'un bloc.
    Le contexte precedent est restaure a la sortie.
    """
    company_token = company_id_var.set(company_id)
    user_token = user_id_var.set(user_id or 0)
    try:
        yield
    finally:
        company_id_var.reset(company_token)
        user_id_var.reset(user_token)
