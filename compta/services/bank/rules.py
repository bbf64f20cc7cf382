"""
Regles de rapprochement bancaire.

match_rule est une fonction pure: les regles sont evaluees dans l'ordre
fourni (priorite decroissante) et la premiere regle dont toutes les
conditions renseignees sont satisfaites gagne.
"""
import logging
from typing import List, Optional, Sequence

from compta.core.database import transactional
from compta.core.exceptions import NotFound
from compta.core.logging import LogContext
from compta.models.bank import BankMatchingRule
from compta.repositories.accounting import AccountRepository
from compta.repositories.bank import BankMatchingRuleRepository
from compta.schemas.base import validate_input
from compta.schemas.bank import MatchingRuleCreate

logger = logging.getLogger(__name__)


def rule_matches(rule: BankMatchingRule, label: str, amount: int) -> bool:
    """
    True si la transaction satisfait toutes les conditions de la regle.

    Libelle: sous-chaine insensible a la casse.
    Montants: compares au montant signe de la transaction.
    """
    if rule.label_contains and rule.label_contains.lower() not in (label or "").lower():
        return False
    if rule.amount_min is not None and amount < rule.amount_min:
        return False
    if rule.amount_max is not None and amount > rule.amount_max:
        return False
    if rule.amount_equals is not None and amount != rule.amount_equals:
        return False
    return True


def match_rule(
    rules: Sequence[BankMatchingRule],
    label: str,
    amount: int,
) -> Optional[BankMatchingRule]:
    """Premiere regle satisfaite, ou None."""
    for rule in rules:
        if rule_matches(rule, label, amount):
            return rule
    return None


class MatchingRuleService:
    """
    Gestion des regles de rapprochement d'une societe.
    """

    def __init__(
        self,
        session,
        rule_repository: BankMatchingRuleRepository,
        account_repository: AccountRepository,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.rule_repository = rule_repository
        self.account_repository = account_repository

    def create_rule(
        self,
        name: str,
        priority: int = 0,
        label_contains: Optional[str] = None,
        amount_min: Optional[int] = None,
        amount_max: Optional[int] = None,
        amount_equals: Optional[int] = None,
        assign_account_id: Optional[int] = None,
        auto_reconcile: bool = False,
    ) -> BankMatchingRule:
        """
        Raises:
            ValidationError: amount_min > amount_max, ou aucune condition
            NotFound: compte d'affectation hors de la societe
        """
        data = validate_input(MatchingRuleCreate, {
            "name": name,
            "priority": priority,
            "label_contains": label_contains,
            "amount_min": amount_min,
            "amount_max": amount_max,
            "amount_equals": amount_equals,
            "assign_account_id": assign_account_id,
            "auto_reconcile": auto_reconcile,
        })

        with transactional(self.session, self.context):
            if data.assign_account_id is not None:
                if self.account_repository.get(data.assign_account_id) is None:
                    raise NotFound("Compte", data.assign_account_id)
            rule = self.rule_repository.create({
                **data.model_dump(),
                "is_active": True,
            })

            logger.info(f"Regle de rapprochement creee: {rule.name} (priorite {rule.priority})")

        return rule

    def list_rules(self) -> List[BankMatchingRule]:
        """Toutes les regles, priorite decroissante."""
        return self.rule_repository.list_ordered()

    def deactivate_rule(self, rule_id: int) -> BankMatchingRule:
        """
        Raises:
            NotFound: regle inexistante
        """
        with transactional(self.session, self.context):
            rule = self.rule_repository.update(rule_id, {"is_active": False})
            if rule is None:
                raise NotFound("Regle", rule_id)

            logger.info(f"Regle de rapprochement {rule_id} desactivee")

        return rule
