"""
Tests d'integration des repositories: isolation par societe et pagination.
"""
from datetime import date

import pytest


class TestCompanyScopedRepository:

    @pytest.mark.integration
    def test_create_forces_repository_company(self, db_session):
        from compta.models.accounting import AccountType
        from compta.repositories.accounting import AccountRepository

        repo = AccountRepository(db_session, 1)

        account = repo.create({
            "code": "627000", "label": "Frais", "type": AccountType.EXPENSE, "company_id": 2,
        })

        assert account.company_id == 1

    @pytest.mark.integration
    def test_get_hides_other_company(self, db_session):
        from compta.repositories.billing import InvoiceRepository
        from tests.factories import InvoiceFactory

        foreign = InvoiceFactory.create(db_session=db_session, company_id=2)

        assert InvoiceRepository(db_session, 1).get(foreign.id) is None
        assert InvoiceRepository(db_session, 2).get(foreign.id) is foreign

    @pytest.mark.integration
    def test_update_ignores_company_change(self, db_session):
        from compta.repositories.billing import InvoiceRepository
        from tests.factories import InvoiceFactory

        invoice = InvoiceFactory.create(db_session=db_session)

        updated = InvoiceRepository(db_session, 1).update(
            invoice.id, {"company_id": 2, "notes": "relance"}
        )

        assert updated.company_id == 1
        assert updated.notes == "relance"

    @pytest.mark.integration
    def test_model_without_company_is_refused(self, db_session):
        """Les lignes enfants passent par BaseRepository."""
        from compta.models.billing import Payment
        from compta.repositories.base import CompanyIsolationError, CompanyScopedRepository

        class PaymentScopedRepository(CompanyScopedRepository[Payment]):
            model = Payment

        with pytest.raises(CompanyIsolationError):
            PaymentScopedRepository(db_session, 1)

    @pytest.mark.integration
    def test_paginate_bounds(self, db_session):
        from compta.repositories.base import PaginationError
        from compta.repositories.billing import InvoiceRepository

        repo = InvoiceRepository(db_session, 1)

        with pytest.raises(PaginationError):
            repo.paginate(page=0)
        with pytest.raises(PaginationError):
            repo.paginate(page_size=101)


class TestBankTransactionRepository:

    @pytest.mark.integration
    def test_isolation_through_bank_account(self, db_session):
        from compta.repositories.bank import BankTransactionRepository
        from tests.factories import BankAccountFactory, BankTransactionFactory

        foreign_account = BankAccountFactory.create(db_session=db_session, company_id=2)
        transaction = BankTransactionFactory.create(
            db_session=db_session, bank_account_id=foreign_account.id
        )

        assert BankTransactionRepository(db_session, 1).get(transaction.id) is None
        assert BankTransactionRepository(db_session, 2).get_for_update(transaction.id) is transaction

    @pytest.mark.integration
    def test_list_by_account_is_paginated_newest_first(self, db_session):
        from compta.repositories.bank import BankTransactionRepository
        from tests.factories import BankAccountFactory, BankTransactionFactory

        account = BankAccountFactory.create(db_session=db_session)
        for day in range(1, 6):
            BankTransactionFactory.create(
                db_session=db_session,
                bank_account_id=account.id,
                transaction_date=date(2025, 3, day),
            )

        page = BankTransactionRepository(db_session, 1).list_by_account(account.id, page=1, page_size=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert page.has_next is True
        assert [t.transaction_date.day for t in page.items] == [5, 4]


class TestMatchingRuleRepository:

    @pytest.mark.integration
    def test_active_rules_by_priority_then_age(self, db_session):
        """Priorite decroissante, puis la plus ancienne a priorite egale."""
        from compta.repositories.bank import BankMatchingRuleRepository
        from tests.factories import BankMatchingRuleFactory

        older = BankMatchingRuleFactory.create(db_session=db_session, priority=5, label_contains="A")
        top = BankMatchingRuleFactory.create(db_session=db_session, priority=9, label_contains="B")
        newer = BankMatchingRuleFactory.create(db_session=db_session, priority=5, label_contains="C")
        BankMatchingRuleFactory.create(
            db_session=db_session, priority=99, label_contains="D", is_active=False
        )

        rules = BankMatchingRuleRepository(db_session, 1).get_active_ordered()

        assert [rule.id for rule in rules] == [top.id, older.id, newer.id]


class TestPaymentRepository:

    @pytest.mark.integration
    def test_total_by_invoice_defaults_to_zero(self, db_session):
        from compta.repositories.billing import PaymentRepository
        from tests.factories import InvoiceFactory

        invoice = InvoiceFactory.create(db_session=db_session)

        assert PaymentRepository(db_session).get_total_by_invoice(invoice.id) == 0
