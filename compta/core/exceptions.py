"""
Exceptions applicatives du noyau comptable.

Ces exceptions sont levees par les services et portent un status_code HTTP
et un error_code, ce qui permet a la couche requete (hors perimetre) de les
convertir mecaniquement en reponses.

Usage:
    from compta.core.exceptions import Conflict
    raise Conflict("Transaction deja rapprochee")

Serialise en:
    {"error": "CONFLICT", "message": "Transaction deja rapprochee"}
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Exception de base pour l'application.

    Toutes les exceptions metier heritent de cette classe.
    Fournit status_code HTTP et error_code pour le client.
    """
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise l'exception pour une reponse JSON"""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Resource Exceptions (404, 409)
# =============================================================================

class NotFound(AppException):
    """Ressource non trouvee (ou appartenant a une autre societe)"""
    status_code = 404
    error_code = "NOT_FOUND"
    message = "Resource not found"

    def __init__(self, resource: Optional[str] = None, resource_id: Any = None):
        message = None
        if resource and resource_id is not None:
            message = f"{resource} {resource_id} introuvable"
        elif resource:
            message = f"{resource} introuvable"
        super().__init__(message=message)
        self.resource = resource
        self.resource_id = resource_id


class Conflict(AppException):
    """Etat incompatible avec l'operation demandee"""
    status_code = 409
    error_code = "CONFLICT"
    message = "Resource state conflict"


# =============================================================================
# Validation Exceptions (422)
# =============================================================================

class ValidationError(AppException):
    """Erreur de validation metier"""
    status_code = 422
    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


# =============================================================================
# Comptabilite
# =============================================================================

class PostingSkipped(AppException):
    """
    Ecriture comptable impossible: prerequis manquant.

    Leve quand aucun exercice ouvert ne couvre la date ou qu'un compte
    requis n'existe pas. Annule l'operation englobante.
    """
    status_code = 422
    error_code = "POSTING_SKIPPED"
    message = "Journal entry could not be posted"


class UnbalancedEntryError(AppException):
    """Ecriture desequilibree (debit != credit). Jamais persistee."""
    status_code = 500
    error_code = "UNBALANCED_ENTRY"
    message = "Journal entry is not balanced"


# =============================================================================
# Services externes (502)
# =============================================================================

class ExternalServiceError(AppException):
    """Echec d'un service externe"""
    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service failure"
