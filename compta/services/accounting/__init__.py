"""
Services comptables: plan comptable, exercices, ecritures.
"""
from compta.services.accounting.chart import (
    ChartOfAccountsResolver,
    ChartOfAccountsService,
    MissingAccountError,
)
from compta.services.accounting.fiscal import (
    AmbiguousFiscalYearError,
    FiscalPeriodResolver,
    FiscalYearService,
    NoOpenFiscalYearError,
)
from compta.services.accounting.ledger import EntryLine, LedgerPoster, build_entry_lines

__all__ = [
    "ChartOfAccountsResolver",
    "ChartOfAccountsService",
    "MissingAccountError",
    "AmbiguousFiscalYearError",
    "FiscalPeriodResolver",
    "FiscalYearService",
    "NoOpenFiscalYearError",
    "EntryLine",
    "LedgerPoster",
    "build_entry_lines",
]
