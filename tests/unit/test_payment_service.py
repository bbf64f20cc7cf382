"""
Tests comportementaux pour PaymentApplicationService.
Repositories et LedgerPoster mockes: on verifie l'orchestration.
"""
import pytest
from datetime import date
from unittest.mock import MagicMock


class TestCheckAmountWithinRemaining:

    @pytest.mark.unit
    def test_exact_remaining_is_accepted(self):
        from compta.services.billing.payment import check_amount_within_remaining

        assert check_amount_within_remaining(40000, 100000, 60000) == 40000

    @pytest.mark.unit
    def test_overpayment_reports_remaining(self):
        from compta.core.exceptions import ValidationError
        from compta.services.billing.payment import check_amount_within_remaining

        with pytest.raises(ValidationError) as exc_info:
            check_amount_within_remaining(40001, 100000, 60000)

        assert exc_info.value.details == {"remaining": 40000}
        assert "40000" in exc_info.value.message

    @pytest.mark.unit
    def test_non_positive_amount_is_rejected(self):
        from compta.core.exceptions import ValidationError
        from compta.services.billing.payment import check_amount_within_remaining

        with pytest.raises(ValidationError):
            check_amount_within_remaining(0, 100000, 0)


class TestPaymentApplicationService:

    @pytest.fixture
    def invoice(self):
        from compta.models.billing import InvoiceStatus

        return MagicMock(
            id=1, number="FAC-0001", total_ttc=100000, amount_paid=0,
            status=InvoiceStatus.SENT,
        )

    @pytest.fixture
    def service(self, invoice):
        from compta.services.billing.payment import PaymentApplicationService

        invoice_repo = MagicMock()
        invoice_repo.get_for_update.return_value = invoice
        payment_repo = MagicMock()
        payment_repo.get_total_by_invoice.return_value = 0
        payment_repo.create.side_effect = lambda data: MagicMock(id=9, **data)

        return PaymentApplicationService(
            session=MagicMock(),
            invoice_repository=invoice_repo,
            payment_repository=payment_repo,
            supplier_invoice_repository=MagicMock(),
            supplier_payment_repository=MagicMock(),
            ledger_poster=MagicMock(),
        )

    @pytest.mark.unit
    def test_partial_payment(self, service, invoice):
        from compta.models.billing import InvoiceStatus

        payment = service.apply_payment(1, 60000, date(2025, 3, 10))

        assert invoice.amount_paid == 60000
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert payment.reference == "PAY-FAC-0001"
        service.ledger_poster.post_client_payment.assert_called_once_with(invoice, payment)
        service.session.commit.assert_called_once()

    @pytest.mark.unit
    def test_amount_paid_is_recomputed_from_payments(self, service, invoice):
        """amount_paid suit la somme des paiements, pas la valeur stockee."""
        from compta.models.billing import InvoiceStatus

        invoice.amount_paid = 12345  # valeur perimee
        service.payment_repository.get_total_by_invoice.return_value = 60000

        service.apply_payment(1, 40000, date(2025, 3, 10))

        assert invoice.amount_paid == 100000
        assert invoice.status == InvoiceStatus.PAID

    @pytest.mark.unit
    def test_overpayment_is_rejected_and_rolled_back(self, service):
        from compta.core.exceptions import ValidationError

        service.payment_repository.get_total_by_invoice.return_value = 60000

        with pytest.raises(ValidationError):
            service.apply_payment(1, 60000, date(2025, 3, 10))

        service.payment_repository.create.assert_not_called()
        service.session.rollback.assert_called_once()

    @pytest.mark.unit
    @pytest.mark.parametrize("status", ["DRAFT", "CANCELLED"])
    def test_unpayable_status(self, service, invoice, status):
        from compta.core.exceptions import ValidationError
        from compta.models.billing import InvoiceStatus

        invoice.status = InvoiceStatus(status)

        with pytest.raises(ValidationError, match="payable"):
            service.apply_payment(1, 1000, date(2025, 3, 10))

    @pytest.mark.unit
    def test_unknown_invoice(self, service):
        from compta.core.exceptions import NotFound

        service.invoice_repository.get_for_update.return_value = None

        with pytest.raises(NotFound):
            service.apply_payment(404, 1000, date(2025, 3, 10))

    @pytest.mark.unit
    def test_posting_failure_rolls_back_payment(self, service, invoice):
        """Une ecriture impossible annule toute l'unite de travail."""
        from compta.services.accounting.fiscal import NoOpenFiscalYearError

        service.ledger_poster.post_client_payment.side_effect = NoOpenFiscalYearError(
            date(2025, 3, 10)
        )

        with pytest.raises(NoOpenFiscalYearError):
            service.apply_payment(1, 1000, date(2025, 3, 10))

        service.session.rollback.assert_called_once()
        service.session.commit.assert_not_called()

    @pytest.mark.unit
    def test_invalid_input_never_opens_a_unit(self, service):
        from compta.core.exceptions import ValidationError

        with pytest.raises(ValidationError):
            service.apply_payment(1, -10, date(2025, 3, 10))

        service.invoice_repository.get_for_update.assert_not_called()


class TestSupplierPayment:

    @pytest.fixture
    def supplier_invoice(self):
        from compta.models.billing import SupplierInvoiceStatus

        return MagicMock(
            id=3, number="FRN-0001", total_ttc=50000, amount_paid=0,
            status=SupplierInvoiceStatus.APPROVED,
        )

    @pytest.fixture
    def service(self, supplier_invoice):
        from compta.services.billing.payment import PaymentApplicationService

        supplier_repo = MagicMock()
        supplier_repo.get_for_update.return_value = supplier_invoice
        supplier_payment_repo = MagicMock()
        supplier_payment_repo.get_total_by_invoice.return_value = 0
        supplier_payment_repo.create.side_effect = lambda data: MagicMock(id=5, **data)

        return PaymentApplicationService(
            session=MagicMock(),
            invoice_repository=MagicMock(),
            payment_repository=MagicMock(),
            supplier_invoice_repository=supplier_repo,
            supplier_payment_repository=supplier_payment_repo,
            ledger_poster=MagicMock(),
        )

    @pytest.mark.unit
    def test_pending_invoice_must_be_approved(self, service, supplier_invoice):
        from compta.core.exceptions import ValidationError
        from compta.models.billing import SupplierInvoiceStatus

        supplier_invoice.status = SupplierInvoiceStatus.PENDING

        with pytest.raises(ValidationError, match="validee avant paiement"):
            service.apply_supplier_payment(3, 1000, date(2025, 4, 1))

    @pytest.mark.unit
    def test_full_supplier_payment(self, service, supplier_invoice):
        from compta.models.billing import SupplierInvoiceStatus

        payment = service.apply_supplier_payment(3, 50000, date(2025, 4, 1))

        assert supplier_invoice.status == SupplierInvoiceStatus.PAID
        assert payment.supplier_invoice_id == 3
        service.ledger_poster.post_supplier_payment.assert_called_once_with(
            supplier_invoice, payment
        )
