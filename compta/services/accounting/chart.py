"""
Plan comptable: resolution des codes de compte et gestion des comptes.

Le resolveur traduit les roles comptables (client_receivable, sales...) en
codes, puis les codes en comptes de la societe. Un compte manquant est une
erreur explicite, jamais un saut silencieux.
"""
import logging
from typing import Dict, Iterable, List, Optional

from compta.core.config import get_settings
from compta.core.database import transactional
from compta.core.exceptions import Conflict, NotFound, PostingSkipped, ValidationError
from compta.core.logging import LogContext
from compta.models.accounting import Account, AccountType
from compta.models.billing import PaymentMethod
from compta.repositories.accounting import AccountRepository

logger = logging.getLogger(__name__)

# Modes de reglement encaisses en caisse plutot qu'en banque
CASH_METHODS = frozenset({PaymentMethod.CASH, PaymentMethod.MOBILE_MONEY})

# Role -> (libelle, type) du plan par defaut
DEFAULT_CHART = {
    "client_receivable": ("Clients", AccountType.ASSET),
    "supplier_payable": ("Fournisseurs", AccountType.LIABILITY),
    "sales": ("Ventes de marchandises", AccountType.REVENUE),
    "vat_collected": ("TVA facturee sur ventes", AccountType.LIABILITY),
    "bank_treasury": ("Banques", AccountType.ASSET),
    "cash_treasury": ("Caisse", AccountType.ASSET),
}


class MissingAccountError(PostingSkipped):
    """Un ou plusieurs comptes requis n'existent pas dans le plan."""
    error_code = "MISSING_ACCOUNT"

    def __init__(self, codes: List[str]):
        self.codes = sorted(codes)
        super().__init__(
            message=f"Compte(s) introuvable(s) dans le plan comptable: {', '.join(self.codes)}",
            details={"missing_codes": self.codes},
        )


class ChartOfAccountsResolver:
    """
    Resout roles et codes de compte pour une societe.

    Args:
        account_repository: Repository des comptes (isole par societe)
        overrides: Mapping role -> code propre a la societe
    """

    def __init__(
        self,
        account_repository: AccountRepository,
        overrides: Optional[Dict[str, str]] = None,
    ):
        self.account_repository = account_repository
        self.codes = {**get_settings().account_codes(), **(overrides or {})}

    def code_for(self, role: str) -> str:
        """Code de compte associe a un role comptable."""
        try:
            return self.codes[role]
        except KeyError:
            raise ValueError(f"Role comptable inconnu: {role}") from None

    def treasury_code(self, method: PaymentMethod) -> str:
        """Compte de tresorerie selon le mode de reglement."""
        if PaymentMethod(method) in CASH_METHODS:
            return self.code_for("cash_treasury")
        return self.code_for("bank_treasury")

    def resolve_codes(self, codes: Iterable[str]) -> Dict[str, Account]:
        """
        Resout une liste de codes en comptes actifs.

        Raises:
            MissingAccountError: liste TOUS les codes manquants
        """
        wanted = set(codes)
        found = {
            account.code: account
            for account in self.account_repository.get_by_codes(wanted)
            if account.is_active
        }
        missing = wanted - set(found)
        if missing:
            raise MissingAccountError(list(missing))
        return found


class ChartOfAccountsService:
    """
    Gestion du plan comptable d'une societe.
    """

    def __init__(
        self,
        session,
        account_repository: AccountRepository,
        context: Optional[LogContext] = None,
    ):
        self.session = session
        self.context = context
        self.account_repository = account_repository

    def create_account(self, code: str, label: str, account_type: AccountType) -> Account:
        """
        Cree un compte.

        Raises:
            ValidationError: code ou libelle vide
            Conflict: code deja utilise dans la societe
        """
        code = (code or "").strip()
        if not code or not (label or "").strip():
            raise ValidationError("Le code et le libelle du compte sont obligatoires")

        with transactional(self.session, self.context):
            if self.account_repository.get_by_code(code) is not None:
                raise Conflict(f"Le compte {code} existe deja")
            account = self.account_repository.create({
                "code": code,
                "label": label.strip(),
                "type": AccountType(account_type),
                "is_active": True,
            })

            logger.info(f"Compte cree: {account.code} - {account.label}")

        return account

    def seed_default_chart(self, codes: Optional[Dict[str, str]] = None) -> List[Account]:
        """
        Cree les comptes par defaut manquants (un par role).
        Idempotent: les comptes existants ne sont pas modifies.

        Returns:
            Les comptes crees par cet appel
        """
        codes = codes or get_settings().account_codes()
        created = []
        with transactional(self.session, self.context):
            for role, (label, account_type) in DEFAULT_CHART.items():
                code = codes[role]
                if self.account_repository.get_by_code(code) is not None:
                    continue
                created.append(self.account_repository.create({
                    "code": code,
                    "label": label,
                    "type": account_type,
                    "is_active": True,
                }))

        if created:
            logger.info(
                f"Plan comptable par defaut: {len(created)} compte(s) cree(s) "
                f"pour la societe {self.account_repository.company_id}"
            )
        return created

    def update_account(
        self,
        account_id: int,
        code: Optional[str] = None,
        label: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        is_active: Optional[bool] = None,
    ) -> Account:
        """
        Modifie un compte non encore mouvemente.

        Raises:
            NotFound: compte inexistant
            Conflict: compte reference par des lignes d'ecriture, ou code pris
        """
        with transactional(self.session, self.context):
            account = self.account_repository.get(account_id)
            if account is None:
                raise NotFound("Compte", account_id)
            if self.account_repository.is_referenced(account_id):
                raise Conflict(
                    f"Le compte {account.code} est mouvemente et ne peut plus etre modifie"
                )

            data = {}
            if code is not None and code != account.code:
                if self.account_repository.get_by_code(code) is not None:
                    raise Conflict(f"Le compte {code} existe deja")
                data["code"] = code
            if label is not None:
                data["label"] = label
            if account_type is not None:
                data["type"] = AccountType(account_type)
            if is_active is not None:
                data["is_active"] = is_active

            account = self.account_repository.update(account_id, data)

        return account
