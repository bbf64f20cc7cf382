"""
Tests d'integration de l'emission des factures, du plan comptable
et des exercices (SQLite).
"""
from datetime import date
from unittest.mock import MagicMock

import pytest


def _draft(db_session, **kwargs):
    from compta.models.billing import InvoiceStatus
    from tests.factories import InvoiceFactory, InvoiceLineFactory

    kwargs.setdefault("lines", [InvoiceLineFactory.build()])
    return InvoiceFactory.create(
        db_session=db_session,
        status=InvoiceStatus.DRAFT,
        total_ht=100000,
        total_tva=18000,
        total_ttc=118000,
        **kwargs,
    )


class TestInvoiceEmission:

    @pytest.mark.integration
    def test_send_certifies_and_posts_sales_entry(self, db_session, services, ledger_ready):
        """DRAFT -> SENT: certification stockee, ecriture de vente en 3 lignes."""
        from compta.models.accounting import JournalEntry, JournalType
        from compta.models.billing import InvoiceStatus

        invoice = _draft(db_session)
        db_session.commit()

        sent = services.emission.send_invoice(invoice.id)

        assert sent.status == InvoiceStatus.SENT
        assert sent.sent_at is not None
        assert sent.mecef_counters == "1/1 FV"
        assert len(sent.mecef_signature) == 64
        assert sent.mecef_qr_code.startswith("F;")

        entry = db_session.query(JournalEntry).filter_by(source_type="invoice").one()
        assert entry.journal_type == JournalType.SALES
        assert entry.reference == invoice.number
        assert entry.entry_date == invoice.issue_date
        assert [(line.account.code, line.debit, line.credit) for line in entry.lines] == [
            ("411000", 118000, 0),
            ("701000", 0, 100000),
            ("443100", 0, 18000),
        ]

    @pytest.mark.integration
    def test_invoice_without_vat_posts_two_lines(self, db_session, services, ledger_ready):
        from compta.models.accounting import JournalEntry
        from compta.models.billing import InvoiceStatus
        from tests.factories import InvoiceFactory, InvoiceLineFactory

        invoice = InvoiceFactory.create(
            db_session=db_session,
            status=InvoiceStatus.DRAFT,
            total_ht=50000,
            total_tva=0,
            total_ttc=50000,
            lines=[InvoiceLineFactory.build(unit_price_ht=50000, tva_rate=0)],
        )
        db_session.commit()

        services.emission.send_invoice(invoice.id)

        entry = db_session.query(JournalEntry).filter_by(source_type="invoice").one()
        assert len(entry.lines) == 2

    @pytest.mark.integration
    def test_sent_invoice_cannot_be_sent_again(self, db_session, services, ledger_ready):
        from compta.core.exceptions import Conflict
        from tests.factories import InvoiceFactory

        invoice = InvoiceFactory.create(db_session=db_session)
        db_session.commit()

        with pytest.raises(Conflict):
            services.emission.send_invoice(invoice.id)

    @pytest.mark.integration
    def test_invoice_without_lines_is_rejected(self, db_session, services, ledger_ready):
        from compta.core.exceptions import ValidationError

        invoice = _draft(db_session, lines=[])
        db_session.commit()

        with pytest.raises(ValidationError):
            services.emission.send_invoice(invoice.id)

    @pytest.mark.integration
    def test_certification_failure_keeps_draft(self, db_session, ledger_ready, company_id):
        """Le certificateur echoue: la facture reste brouillon, aucune ecriture."""
        from compta.models.accounting import JournalEntry
        from compta.models.billing import InvoiceStatus
        from compta.services import build_services
        from compta.services.billing.certification import CertificationError

        certifier = MagicMock()
        certifier.certify.side_effect = CertificationError("Timeout lors de la certification e-MECeF")
        services = build_services(db_session, company_id, certifier=certifier)
        invoice = _draft(db_session)
        db_session.commit()

        with pytest.raises(CertificationError):
            services.emission.send_invoice(invoice.id)

        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.mecef_signature is None
        assert db_session.query(JournalEntry).count() == 0

    @pytest.mark.integration
    def test_posting_failure_keeps_draft(self, db_session, services):
        """Sans exercice ouvert, l'envoi est annule malgre la certification."""
        from compta.models.billing import InvoiceStatus
        from compta.services.accounting.fiscal import NoOpenFiscalYearError

        services.chart.seed_default_chart()
        invoice = _draft(db_session)
        db_session.commit()

        with pytest.raises(NoOpenFiscalYearError):
            services.emission.send_invoice(invoice.id)

        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.sent_at is None


class TestChartOfAccounts:

    @pytest.mark.integration
    def test_seed_is_idempotent(self, db_session, services):
        from compta.models.accounting import Account

        created = services.chart.seed_default_chart()
        again = services.chart.seed_default_chart()

        assert len(created) == 6
        assert again == []
        assert db_session.query(Account).count() == 6

    @pytest.mark.integration
    def test_seed_is_per_company(self, db_session, services, company_id):
        from compta.models.accounting import Account
        from compta.services import build_services
        from compta.services.billing.certification import SimulatedCertifier

        other = build_services(db_session, 2, certifier=SimulatedCertifier())

        services.chart.seed_default_chart()
        other.chart.seed_default_chart()

        assert db_session.query(Account).filter_by(company_id=company_id).count() == 6
        assert db_session.query(Account).filter_by(company_id=2).count() == 6

    @pytest.mark.integration
    def test_duplicate_code_raises_conflict(self, db_session, services):
        from compta.core.exceptions import Conflict
        from compta.models.accounting import AccountType

        services.chart.create_account("627000", "Frais bancaires", AccountType.EXPENSE)

        with pytest.raises(Conflict):
            services.chart.create_account("627000", "Doublon", AccountType.EXPENSE)

    @pytest.mark.integration
    def test_referenced_account_cannot_be_updated(self, db_session, services, ledger_ready):
        from compta.core.exceptions import Conflict
        from compta.models.accounting import Account
        from tests.factories import InvoiceFactory

        invoice = InvoiceFactory.create(db_session=db_session)
        db_session.commit()
        services.payments.apply_payment(invoice.id, 1000, date(2025, 3, 10))
        bank = db_session.query(Account).filter_by(code="512000").one()

        with pytest.raises(Conflict):
            services.chart.update_account(bank.id, label="Banque principale")

    @pytest.mark.integration
    def test_unreferenced_account_can_be_updated(self, db_session, services):
        from compta.models.accounting import AccountType

        account = services.chart.create_account("627000", "Frais", AccountType.EXPENSE)

        updated = services.chart.update_account(account.id, label="Frais bancaires", is_active=False)

        assert updated.label == "Frais bancaires"
        assert updated.is_active is False

    @pytest.mark.integration
    def test_inactive_account_blocks_posting(self, db_session, services, ledger_ready):
        from compta.models.accounting import Account
        from compta.services.accounting.chart import MissingAccountError
        from tests.factories import InvoiceFactory

        bank = db_session.query(Account).filter_by(code="512000").one()
        services.chart.update_account(bank.id, is_active=False)
        invoice = InvoiceFactory.create(db_session=db_session)
        db_session.commit()

        with pytest.raises(MissingAccountError) as exc_info:
            services.payments.apply_payment(invoice.id, 1000, date(2025, 3, 10))

        assert exc_info.value.codes == ["512000"]

    @pytest.mark.integration
    def test_account_overrides_are_used_for_posting(self, db_session, company_id):
        """Une societe avec son propre compte de banque."""
        from compta.models.accounting import AccountType, JournalEntry
        from compta.services import build_services
        from compta.services.billing.certification import SimulatedCertifier
        from tests.factories import InvoiceFactory

        services = build_services(
            db_session, company_id, certifier=SimulatedCertifier(),
            account_overrides={"bank_treasury": "521000"},
        )
        services.chart.seed_default_chart()
        services.chart.create_account("521000", "Banque locale", AccountType.ASSET)
        services.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))
        invoice = InvoiceFactory.create(db_session=db_session)
        db_session.commit()

        services.payments.apply_payment(invoice.id, 1000, date(2025, 3, 10))

        entry = db_session.query(JournalEntry).one()
        assert entry.lines[0].account.code == "521000"


class TestFiscalYears:

    @pytest.mark.integration
    def test_overlapping_year_is_refused(self, db_session, services):
        from compta.core.exceptions import Conflict

        first = services.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))

        with pytest.raises(Conflict) as exc_info:
            services.fiscal_years.create_fiscal_year(date(2025, 12, 31), date(2026, 12, 30))

        assert exc_info.value.details["fiscal_year_ids"] == [first.id]

    @pytest.mark.integration
    def test_adjacent_years_are_allowed(self, db_session, services):
        services.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))
        following = services.fiscal_years.create_fiscal_year(date(2026, 1, 1), date(2026, 12, 31))

        assert services.fiscal_resolver.resolve(date(2026, 6, 1)).id == following.id

    @pytest.mark.integration
    def test_other_company_years_do_not_overlap(self, db_session, services):
        from compta.services import build_services
        from compta.services.billing.certification import SimulatedCertifier

        other = build_services(db_session, 2, certifier=SimulatedCertifier())
        services.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))
        other.fiscal_years.create_fiscal_year(date(2025, 1, 1), date(2025, 12, 31))

        assert other.fiscal_resolver.find_open(date(2025, 6, 1)) is not None

    @pytest.mark.integration
    def test_boundaries_are_inclusive(self, db_session, services, ledger_ready):
        assert services.fiscal_resolver.resolve(date(2025, 1, 1)).id == ledger_ready.id
        assert services.fiscal_resolver.resolve(date(2025, 12, 31)).id == ledger_ready.id
        assert services.fiscal_resolver.find_open(date(2026, 1, 1)) is None

    @pytest.mark.integration
    def test_close_twice(self, db_session, services, ledger_ready):
        from compta.core.exceptions import Conflict

        closed = services.fiscal_years.close_fiscal_year(ledger_ready.id)

        assert closed.is_closed is True
        with pytest.raises(Conflict):
            services.fiscal_years.close_fiscal_year(ledger_ready.id)
