"""
Services bancaires: import, saisie, regles et rapprochement.
"""
from compta.services.bank.importer import BankImportService, ImportResult
from compta.services.bank.reconciliation import ReconciliationResult, ReconciliationService
from compta.services.bank.rules import MatchingRuleService, match_rule, rule_matches
from compta.services.bank.transaction import BankTransactionService, suggest_match

__all__ = [
    "BankImportService",
    "ImportResult",
    "ReconciliationResult",
    "ReconciliationService",
    "MatchingRuleService",
    "match_rule",
    "rule_matches",
    "BankTransactionService",
    "suggest_match",
]
