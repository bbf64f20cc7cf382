"""
Client de certification des factures (e-MECeF, DGI Benin).

Le workflow d'emission recoit un InvoiceCertifier par injection:
- SimulatedCertifier: donnees credibles generees localement (dev, demo)
- MecefHttpCertifier: appel de l'API e-MECeF via httpx

L'API e-MECeF fonctionne en deux temps: POST /invoice enregistre la
facture et retourne un uid, PUT /invoice/{uid}/confirm la certifie.
"""
import itertools
import logging
import secrets
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import httpx

from compta.core.config import get_settings
from compta.core.exceptions import ExternalServiceError
from compta.models.base import utc_now
from compta.models.billing import Invoice

logger = logging.getLogger(__name__)

# Groupes de taxe e-MECeF: A = exonere, B = taux normal 18%
TAX_GROUP_EXEMPT = "A"
TAX_GROUP_STANDARD = "B"


@dataclass
class CertificationItem:
    name: str
    quantity: int
    unit_price: int
    tax_group: str


@dataclass
class CertificationRequest:
    """Donnees envoyees au service de certification."""
    invoice_number: str
    company_ifu: str
    total_amount: int
    items: List[CertificationItem] = field(default_factory=list)
    client_ifu: Optional[str] = None
    client_name: Optional[str] = None
    type: str = "FV"  # Facture de vente


@dataclass
class Certification:
    """Resultat de certification stocke sur la facture."""
    nim: str
    counters: str
    dtc: str
    qr_code: str
    signature: str
    type: str = "FV"


class CertificationError(ExternalServiceError):
    """Le service de certification a echoue ou repondu de facon invalide."""
    error_code = "CERTIFICATION_FAILED"
    message = "Invoice certification failed"


class InvoiceCertifier(Protocol):
    def certify(self, request: CertificationRequest) -> Certification:
        ...


def build_certification_request(invoice: Invoice, company_ifu: str) -> CertificationRequest:
    """Construit la requete de certification depuis une facture et ses lignes."""
    return CertificationRequest(
        invoice_number=invoice.number,
        company_ifu=company_ifu,
        total_amount=invoice.total_ttc,
        client_ifu=invoice.client_ifu,
        client_name=invoice.client_name,
        items=[
            CertificationItem(
                name=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price_ht,
                tax_group=TAX_GROUP_STANDARD if line.tva_rate else TAX_GROUP_EXEMPT,
            )
            for line in invoice.lines
        ],
    )


def format_qr_code(
    nim: str,
    request: CertificationRequest,
    dtc: str,
    counters: str,
    signature: str,
) -> str:
    return ";".join([
        "F",
        nim,
        request.company_ifu,
        request.client_ifu or "",
        request.type,
        dtc,
        str(request.total_amount),
        counters,
        signature,
    ])


class SimulatedCertifier:
    """
    Certification simulee.
    Compteurs incrementes par instance, signature hexadecimale de 64 caracteres.
    """

    def __init__(self, nim: Optional[str] = None):
        self.nim = nim or get_settings().MECEF_NIM
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def certify(self, request: CertificationRequest) -> Certification:
        with self._lock:
            sequence = next(self._counter)

        dtc = utc_now().isoformat()
        counters = f"{sequence}/{sequence} {request.type}"
        signature = secrets.token_hex(32).upper()

        logger.info(f"Certification simulee de la facture {request.invoice_number}")
        return Certification(
            nim=self.nim,
            counters=counters,
            dtc=dtc,
            qr_code=format_qr_code(self.nim, request, dtc, counters, signature),
            signature=signature,
            type=request.type,
        )


class MecefHttpCertifier:
    """
    Certification via l'API e-MECeF.

    Args:
        api_url: URL de base de l'API (defaut: settings.MECEF_API_URL)
        token: Jeton d'acces (defaut: settings.MECEF_TOKEN)
        timeout: Timeout des requetes en secondes
        client: Client httpx injecte (tests)
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.MECEF_API_URL).rstrip("/")
        self.token = token or settings.MECEF_TOKEN
        self.timeout = timeout or settings.MECEF_TIMEOUT
        self._client = client

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    def _payload(self, request: CertificationRequest) -> dict:
        return {
            "ifu": request.company_ifu,
            "type": request.type,
            "items": [
                {
                    "name": item.name,
                    "price": item.unit_price,
                    "quantity": item.quantity,
                    "taxGroup": item.tax_group,
                }
                for item in request.items
            ],
            "client": {"ifu": request.client_ifu, "name": request.client_name},
            "total": request.total_amount,
            "reference": request.invoice_number,
        }

    def certify(self, request: CertificationRequest) -> Certification:
        """
        Raises:
            CertificationError: timeout, erreur HTTP ou reponse incomplete
        """
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(
                f"{self.api_url}/invoice",
                json=self._payload(request),
                headers=self._headers(),
            )
            response.raise_for_status()
            uid = response.json().get("uid")
            if not uid:
                raise CertificationError("Reponse e-MECeF sans uid")

            response = client.put(
                f"{self.api_url}/invoice/{uid}/confirm",
                headers=self._headers(),
            )
            response.raise_for_status()
            result = response.json()
        except httpx.TimeoutException as exc:
            logger.error(f"e-MECeF timeout pour la facture {request.invoice_number}")
            raise CertificationError("Timeout lors de la certification e-MECeF") from exc
        except httpx.HTTPError as exc:
            logger.error(f"e-MECeF HTTP error: {exc}")
            raise CertificationError(
                "Erreur de communication avec le service e-MECeF"
            ) from exc
        except ValueError as exc:
            raise CertificationError("Reponse e-MECeF illisible") from exc
        finally:
            if self._client is None:
                client.close()

        try:
            return Certification(
                nim=result["nim"],
                counters=result["counters"],
                dtc=result["dateTime"],
                qr_code=result["qrCode"],
                signature=result["codeMECeFDGI"],
                type=request.type,
            )
        except KeyError as exc:
            raise CertificationError(f"Reponse e-MECeF incomplete: champ {exc} absent") from exc


def get_certifier() -> InvoiceCertifier:
    """Certifier selon la configuration (HTTP si MECEF_ENABLED, sinon simulation)."""
    settings = get_settings()
    if settings.MECEF_ENABLED:
        return MecefHttpCertifier()
    return SimulatedCertifier()
