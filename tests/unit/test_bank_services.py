"""
Tests unitaires des services bancaires: import, pre-rapprochement,
rapprochement. Repositories mockes.
"""
import pytest
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock


class TestSuggestMatch:
    """Choix d'une facture parmi des candidats de meme montant."""

    @pytest.mark.unit
    def test_number_in_label_wins(self):
        from compta.services.bank.transaction import suggest_match

        first = SimpleNamespace(id=1, number="FAC-2025-0001")
        second = SimpleNamespace(id=2, number="FAC-2025-0002")

        assert suggest_match([first, second], "VIR ACME fac-2025-0002") is second

    @pytest.mark.unit
    def test_single_candidate_is_retained(self):
        from compta.services.bank.transaction import suggest_match

        only = SimpleNamespace(id=1, number="FAC-2025-0001")

        assert suggest_match([only], "VIREMENT RECU") is only

    @pytest.mark.unit
    def test_ambiguous_candidates_give_nothing(self):
        from compta.services.bank.transaction import suggest_match

        candidates = [
            SimpleNamespace(id=1, number="FAC-2025-0001"),
            SimpleNamespace(id=2, number="FAC-2025-0002"),
        ]

        assert suggest_match(candidates, "VIREMENT RECU") is None

    @pytest.mark.unit
    def test_no_candidate(self):
        from compta.services.bank.transaction import suggest_match

        assert suggest_match([], "FAC-2025-0001") is None


class TestBankImportService:

    @pytest.fixture
    def account(self):
        return MagicMock(id=1, current_balance=10000)

    @pytest.fixture
    def service(self, account):
        from compta.services.bank.importer import BankImportService

        account_repo = MagicMock()
        account_repo.get_for_update.return_value = account
        transaction_repo = MagicMock()
        created = iter(range(100, 200))
        transaction_repo.create.side_effect = lambda data: SimpleNamespace(id=next(created), **data)
        rule_repo = MagicMock()
        rule_repo.get_active_ordered.return_value = []

        return BankImportService(MagicMock(), account_repo, transaction_repo, rule_repo)

    @pytest.mark.unit
    def test_balance_moves_by_sum_of_amounts(self, service, account):
        rows = [
            {"date": "01/03/2025", "label": "VIR CLIENT", "amount": 50000},
            {"date": "2025-03-02", "label": "FRAIS", "amount": -2500},
        ]

        result = service.import_transactions(1, rows)

        assert result.imported_count == 2
        assert result.new_balance == 57500
        assert account.current_balance == 57500
        assert result.transaction_ids == [100, 101]

    @pytest.mark.unit
    def test_invalid_row_aborts_before_any_write(self, service):
        """Une date invalide en ligne 3: rien n'est ecrit, la ligne est nommee."""
        from compta.core.exceptions import ValidationError

        rows = [
            {"date": "01/03/2025", "label": "A", "amount": 1},
            {"date": "02/03/2025", "label": "B", "amount": 2},
            {"date": "2025/03/03", "label": "C", "amount": 3},
        ]

        with pytest.raises(ValidationError, match="Ligne 3"):
            service.import_transactions(1, rows)

        service.bank_account_repository.get_for_update.assert_not_called()
        service.transaction_repository.create.assert_not_called()

    @pytest.mark.unit
    def test_rule_assigns_account(self, service):
        from compta.models.bank import TransactionSource

        rule = SimpleNamespace(
            id=4, label_contains="FRAIS", amount_min=None, amount_max=None,
            amount_equals=None, assign_account_id=27,
        )
        service.rule_repository.get_active_ordered.return_value = [rule]

        result = service.import_transactions(1, [
            {"date": "01/03/2025", "label": "Frais tenue de compte", "amount": -2500},
            {"date": "01/03/2025", "label": "VIR CLIENT", "amount": 9000},
        ])

        calls = [call.args[0] for call in service.transaction_repository.create.call_args_list]
        assert result.assigned_count == 1
        assert calls[0]["assigned_account_id"] == 27
        assert calls[0]["matching_rule_id"] == 4
        assert calls[1]["assigned_account_id"] is None
        assert all(data["source"] == TransactionSource.IMPORT for data in calls)

    @pytest.mark.unit
    def test_empty_batch_keeps_balance(self, service, account):
        result = service.import_transactions(1, [])

        assert result.imported_count == 0
        assert result.new_balance == 10000
        service.transaction_repository.create.assert_not_called()

    @pytest.mark.unit
    def test_unknown_account(self, service):
        from compta.core.exceptions import NotFound

        service.bank_account_repository.get_for_update.return_value = None

        with pytest.raises(NotFound):
            service.import_transactions(99, [{"date": "01/03/2025", "label": "A", "amount": 1}])


class TestReconciliationService:

    @pytest.fixture
    def transaction(self):
        return MagicMock(
            id=8, amount=-50000, transaction_date=date(2025, 4, 2),
            reference=None, label="VIR FOURNIL", is_reconciled=False,
        )

    @pytest.fixture
    def service(self, transaction):
        from compta.services.bank.reconciliation import ReconciliationService

        transaction_repo = MagicMock()
        transaction_repo.get_for_update.return_value = transaction
        return ReconciliationService(MagicMock(), transaction_repo, MagicMock())

    @pytest.mark.unit
    def test_already_reconciled_raises_conflict(self, service, transaction):
        from compta.core.exceptions import Conflict

        transaction.is_reconciled = True

        with pytest.raises(Conflict, match="deja rapprochee"):
            service.reconcile(8, 3, "supplier")

        service.payment_service.apply_supplier_payment_in_unit.assert_not_called()

    @pytest.mark.unit
    def test_supplier_reconciliation_uses_absolute_amount(self, service, transaction):
        from compta.models.bank import MatchedType

        result = service.reconcile(8, 3, "supplier")

        kwargs = service.payment_service.apply_supplier_payment_in_unit.call_args.kwargs
        assert kwargs["amount"] == 50000
        assert kwargs["supplier_invoice_id"] == 3
        assert kwargs["bank_transaction_id"] == 8
        assert kwargs["reference"] == "VIR FOURNIL"
        assert transaction.is_reconciled is True
        assert transaction.matched_type == MatchedType.SUPPLIER
        assert result.transaction is transaction

    @pytest.mark.unit
    def test_payment_failure_leaves_transaction_unreconciled(self, service, transaction):
        from compta.core.exceptions import ValidationError

        service.payment_service.apply_supplier_payment_in_unit.side_effect = ValidationError(
            "Le montant depasse le solde restant (1000)"
        )

        with pytest.raises(ValidationError):
            service.reconcile(8, 3, "supplier")

        assert transaction.is_reconciled is False
        service.session.rollback.assert_called_once()

    @pytest.mark.unit
    def test_outflow_cannot_settle_client_invoice(self, service, transaction):
        from compta.core.exceptions import ValidationError

        with pytest.raises(ValidationError, match="incompatible") as exc_info:
            service.reconcile(8, 3, "client")

        assert exc_info.value.details == {"amount": -50000, "invoice_type": "client"}
        service.payment_service.apply_client_payment_in_unit.assert_not_called()
        assert transaction.is_reconciled is False

    @pytest.mark.unit
    def test_inflow_cannot_settle_supplier_invoice(self, service, transaction):
        from compta.core.exceptions import ValidationError

        transaction.amount = 50000

        with pytest.raises(ValidationError):
            service.reconcile(8, 3, "supplier")

        service.payment_service.apply_supplier_payment_in_unit.assert_not_called()

    @pytest.mark.unit
    def test_unknown_transaction(self, service):
        from compta.core.exceptions import NotFound

        service.transaction_repository.get_for_update.return_value = None

        with pytest.raises(NotFound):
            service.reconcile(404, 3, "client")
