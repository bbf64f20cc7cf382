"""
Services metier du noyau comptable.

build_services cable repositories, resolveurs et clients pour une
session et une societe. Aucun singleton: chaque unite d'appel construit
ses propres services.
"""
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional

from sqlalchemy.orm import Session

from compta.core.database import SessionLocal
from compta.core.logging import (
    LogContext,
    clear_request_context,
    get_logger,
    set_request_context,
)
from compta.repositories.accounting import (
    AccountRepository,
    FiscalYearRepository,
    JournalEntryRepository,
)
from compta.repositories.bank import (
    BankAccountRepository,
    BankMatchingRuleRepository,
    BankTransactionRepository,
)
from compta.repositories.billing import (
    InvoiceRepository,
    PaymentRepository,
    SupplierInvoiceRepository,
    SupplierPaymentRepository,
)
from compta.services.accounting import (
    ChartOfAccountsResolver,
    ChartOfAccountsService,
    FiscalPeriodResolver,
    FiscalYearService,
    LedgerPoster,
)
from compta.services.bank import (
    BankImportService,
    BankTransactionService,
    MatchingRuleService,
    ReconciliationService,
)
from compta.services.billing import (
    InvoiceCertifier,
    InvoiceEmissionService,
    PaymentApplicationService,
    get_certifier,
)

logger = get_logger(__name__)


@dataclass
class Services:
    """Services d'une societe, partageant la meme session."""
    company_id: int
    user_id: Optional[int]
    chart: ChartOfAccountsService
    account_resolver: ChartOfAccountsResolver
    fiscal_years: FiscalYearService
    fiscal_resolver: FiscalPeriodResolver
    ledger: LedgerPoster
    payments: PaymentApplicationService
    emission: InvoiceEmissionService
    rules: MatchingRuleService
    bank_import: BankImportService
    bank_transactions: BankTransactionService
    reconciliation: ReconciliationService


def build_services(
    session: Session,
    company_id: int,
    certifier: Optional[InvoiceCertifier] = None,
    account_overrides: Optional[Dict[str, str]] = None,
    strict_posting: Optional[bool] = None,
    user_id: Optional[int] = None,
) -> Services:
    """
    Construit les services pour une societe.

    Args:
        session: Session SQLAlchemy (une par unite d'appel)
        company_id: Societe courante
        certifier: Client de certification (defaut selon MECEF_ENABLED)
        account_overrides: Mapping role -> code propre a la societe
        strict_posting: Force le mode d'ecriture (defaut LEDGER_STRICT_POSTING)
        user_id: Utilisateur a l'origine des appels, lie aux logs
    """
    context = LogContext(company_id=company_id, user_id=user_id)
    account_repository = AccountRepository(session, company_id)
    fiscal_year_repository = FiscalYearRepository(session, company_id)
    invoice_repository = InvoiceRepository(session, company_id)
    supplier_invoice_repository = SupplierInvoiceRepository(session, company_id)
    bank_account_repository = BankAccountRepository(session, company_id)
    transaction_repository = BankTransactionRepository(session, company_id)
    rule_repository = BankMatchingRuleRepository(session, company_id)

    account_resolver = ChartOfAccountsResolver(account_repository, overrides=account_overrides)
    fiscal_resolver = FiscalPeriodResolver(fiscal_year_repository)
    ledger = LedgerPoster(
        JournalEntryRepository(session, company_id),
        account_resolver,
        fiscal_resolver,
        strict=strict_posting,
    )
    payments = PaymentApplicationService(
        session,
        invoice_repository,
        PaymentRepository(session),
        supplier_invoice_repository,
        SupplierPaymentRepository(session),
        ledger,
        context=context,
    )

    return Services(
        company_id=company_id,
        user_id=user_id,
        chart=ChartOfAccountsService(session, account_repository, context=context),
        account_resolver=account_resolver,
        fiscal_years=FiscalYearService(session, fiscal_year_repository, context=context),
        fiscal_resolver=fiscal_resolver,
        ledger=ledger,
        payments=payments,
        emission=InvoiceEmissionService(
            session,
            invoice_repository,
            ledger,
            certifier or get_certifier(),
            context=context,
        ),
        rules=MatchingRuleService(
            session, rule_repository, account_repository, context=context
        ),
        bank_import=BankImportService(
            session,
            bank_account_repository,
            transaction_repository,
            rule_repository,
            context=context,
        ),
        bank_transactions=BankTransactionService(
            session,
            bank_account_repository,
            transaction_repository,
            invoice_repository,
            supplier_invoice_repository,
            context=context,
        ),
        reconciliation=ReconciliationService(
            session, transaction_repository, payments, context=context
        ),
    )


@contextmanager
def service_scope(
    company_id: int,
    user_id: Optional[int] = None,
    request_id: Optional[str] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    **options,
) -> Iterator[Services]:
    """
    Unite d'appel complete pour un hote (worker, script, route).

    Ouvre une session dediee, positionne request_id/company_id/user_id
    dans le contexte de log, et garantit la fermeture de la session.

    Usage:
        with service_scope(company_id=12, user_id=3) as services:
            services.payments.apply_payment(invoice_id, 60000, date.today())
    """
    request_id = request_id or str(uuid.uuid4())
    set_request_context(request_id=request_id, company_id=company_id, user_id=user_id)
    session = session_factory()
    try:
        logger.debug(f"Ouverture de l'unite d'appel {request_id}")
        yield build_services(session, company_id, user_id=user_id, **options)
    finally:
        session.close()
        clear_request_context()


__all__ = ["Services", "build_services", "service_scope"]
