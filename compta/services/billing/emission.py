"""
Emission des factures clients: DRAFT -> SENT.
"""
import logging
from typing import Optional

from compta.core.config import get_settings
from compta.core.database import transactional
from compta.core.exceptions import Conflict, NotFound, ValidationError
from compta.core.logging import LogContext
from compta.models.base import utc_now
from compta.models.billing import Invoice, InvoiceStatus
from compta.repositories.billing import InvoiceRepository
from compta.services.accounting.ledger import LedgerPoster
from compta.services.billing.certification import (
    InvoiceCertifier,
    build_certification_request,
)

logger = logging.getLogger(__name__)


class InvoiceEmissionService:
    """
    Envoie une facture: certification, passage en SENT et ecriture de vente,
    le tout dans une seule unite de travail.
    """

    def __init__(
        self,
        session,
        invoice_repository: InvoiceRepository,
        ledger_poster: LedgerPoster,
        certifier: InvoiceCertifier,
        company_ifu: Optional[str] = None,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.invoice_repository = invoice_repository
        self.ledger_poster = ledger_poster
        self.certifier = certifier
        self.company_ifu = company_ifu if company_ifu is not None else get_settings().MECEF_COMPANY_IFU

    def send_invoice(self, invoice_id: int) -> Invoice:
        """
        Raises:
            NotFound: facture inexistante
            Conflict: la facture n'est pas en brouillon
            ValidationError: facture sans ligne
            CertificationError: echec du service de certification
            PostingSkipped: exercice ou compte manquant
        """
        with transactional(self.session, self.context):
            invoice = self.invoice_repository.get_for_update(invoice_id)
            if invoice is None:
                raise NotFound("Facture", invoice_id)
            if invoice.status != InvoiceStatus.DRAFT:
                raise Conflict(
                    f"Seule une facture brouillon peut etre envoyee "
                    f"(statut actuel: {invoice.status.value})"
                )
            if not invoice.lines:
                raise ValidationError("La facture doit comporter au moins une ligne")

            certification = self.certifier.certify(
                build_certification_request(invoice, self.company_ifu)
            )
            invoice.mecef_nim = certification.nim
            invoice.mecef_counters = certification.counters
            invoice.mecef_dtc = certification.dtc
            invoice.mecef_qr_code = certification.qr_code
            invoice.mecef_signature = certification.signature

            invoice.status = InvoiceStatus.SENT
            invoice.sent_at = utc_now()
            self.session.flush()

            self.ledger_poster.post_invoice_emission(invoice)

            logger.info(
                f"Facture {invoice.number} envoyee et certifiee",
                extra={"invoice_id": invoice.id},
            )

        return invoice
