"""
Services de facturation: emission, certification, paiements.
"""
from compta.services.billing.certification import (
    Certification,
    CertificationError,
    CertificationRequest,
    InvoiceCertifier,
    MecefHttpCertifier,
    SimulatedCertifier,
    get_certifier,
)
from compta.services.billing.emission import InvoiceEmissionService
from compta.services.billing.payment import PaymentApplicationService

__all__ = [
    "Certification",
    "CertificationError",
    "CertificationRequest",
    "InvoiceCertifier",
    "MecefHttpCertifier",
    "SimulatedCertifier",
    "get_certifier",
    "InvoiceEmissionService",
    "PaymentApplicationService",
]
