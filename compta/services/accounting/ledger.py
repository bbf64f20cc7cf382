"""
Ledger Poster: construction et persistance des ecritures en partie double.

La construction (build_entry_lines) est pure et verifie l'equilibre avant
toute ecriture en base. La persistance se fait dans l'unite de travail de
l'appelant: un echec annule aussi l'operation metier englobante.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from compta.core.config import get_settings
from compta.core.exceptions import PostingSkipped, UnbalancedEntryError
from compta.models.accounting import JournalEntry, JournalLine, JournalType
from compta.models.billing import Invoice, Payment, PaymentMethod, SupplierInvoice, SupplierPayment
from compta.repositories.accounting import JournalEntryRepository
from compta.services.accounting.chart import ChartOfAccountsResolver
from compta.services.accounting.fiscal import FiscalPeriodResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryLine:
    """Ligne d'ecriture a construire, adressee par code de compte."""
    account_code: str
    debit: int = 0
    credit: int = 0
    label: str = ""


def build_entry_lines(lines: Sequence[EntryLine]) -> List[EntryLine]:
    """
    Valide et normalise les lignes d'une ecriture.

    Les lignes a zero (ex: TVA nulle) sont omises. Apres filtrage:
    au moins deux lignes, montants positifs, un seul cote non nul par ligne,
    somme des debits == somme des credits.

    Raises:
        UnbalancedEntryError
    """
    kept = [line for line in lines if line.debit or line.credit]

    for line in kept:
        if line.debit < 0 or line.credit < 0:
            raise UnbalancedEntryError(
                f"Montant negatif sur le compte {line.account_code}"
            )
        if line.debit and line.credit:
            raise UnbalancedEntryError(
                f"Ligne au debit et au credit sur le compte {line.account_code}"
            )

    if len(kept) < 2:
        raise UnbalancedEntryError("Une ecriture comporte au moins deux lignes")

    total_debit = sum(line.debit for line in kept)
    total_credit = sum(line.credit for line in kept)
    if total_debit != total_credit:
        raise UnbalancedEntryError(
            f"Ecriture desequilibree: debit {total_debit} != credit {total_credit}",
            details={"debit": total_debit, "credit": total_credit},
        )
    return kept


def journal_for_method(method: PaymentMethod) -> JournalType:
    """Journal CASH pour les especes, BANK sinon."""
    if PaymentMethod(method) == PaymentMethod.CASH:
        return JournalType.CASH
    return JournalType.BANK


class LedgerPoster:
    """
    Passe les ecritures comptables des evenements metier.

    Un exercice ou un compte manquant leve PostingSkipped. Si strict est
    False, l'ecriture est journalisee comme ignoree et None est retourne.
    """

    def __init__(
        self,
        entry_repository: JournalEntryRepository,
        account_resolver: ChartOfAccountsResolver,
        fiscal_resolver: FiscalPeriodResolver,
        strict: Optional[bool] = None,
    ):
        self.entry_repository = entry_repository
        self.account_resolver = account_resolver
        self.fiscal_resolver = fiscal_resolver
        self.strict = get_settings().LEDGER_STRICT_POSTING if strict is None else strict

    def post_entry(
        self,
        entry_date: date,
        reference: str,
        description: str,
        journal_type: JournalType,
        lines: Sequence[EntryLine],
        source_type: Optional[str] = None,
        source_id: Optional[int] = None,
    ) -> Optional[JournalEntry]:
        """
        Construit et persiste une ecriture equilibree (flush, sans commit).

        Raises:
            UnbalancedEntryError: toujours, quel que soit le mode
            PostingSkipped: exercice ou compte manquant (mode strict)
        """
        built = build_entry_lines(lines)

        try:
            fiscal_year = self.fiscal_resolver.resolve(entry_date)
            accounts = self.account_resolver.resolve_codes(
                line.account_code for line in built
            )
        except PostingSkipped as exc:
            if self.strict:
                raise
            logger.warning(
                f"Ecriture {reference} ignoree: {exc.message}",
                extra={"error_code": exc.error_code, "source_type": source_type},
            )
            return None

        entry = self.entry_repository.create({
            "fiscal_year_id": fiscal_year.id,
            "entry_date": entry_date,
            "reference": reference,
            "description": description,
            "journal_type": journal_type,
            "is_validated": True,
            "source_type": source_type,
            "source_id": source_id,
            "lines": [
                JournalLine(
                    position=position,
                    account_id=accounts[line.account_code].id,
                    debit=line.debit,
                    credit=line.credit,
                    label=line.label or description,
                )
                for position, line in enumerate(built, start=1)
            ],
        })

        logger.info(
            f"Ecriture {entry.reference} passee au journal {journal_type.value}",
            extra={"entry_id": entry.id, "amount": sum(line.debit for line in built)},
        )
        return entry

    def post_invoice_emission(self, invoice: Invoice) -> Optional[JournalEntry]:
        """
        Vente: debit clients TTC, credit ventes HT, credit TVA collectee.
        """
        number = invoice.number
        return self.post_entry(
            entry_date=invoice.issue_date,
            reference=number,
            description=f"Facture {number} - {invoice.client_name}",
            journal_type=JournalType.SALES,
            lines=[
                EntryLine(
                    self.account_resolver.code_for("client_receivable"),
                    debit=invoice.total_ttc,
                    label=f"Client - Facture {number}",
                ),
                EntryLine(
                    self.account_resolver.code_for("sales"),
                    credit=invoice.total_ht,
                    label=f"Ventes - Facture {number}",
                ),
                EntryLine(
                    self.account_resolver.code_for("vat_collected"),
                    credit=invoice.total_tva,
                    label=f"TVA collectee - Facture {number}",
                ),
            ],
            source_type="invoice",
            source_id=invoice.id,
        )

    def post_client_payment(self, invoice: Invoice, payment: Payment) -> Optional[JournalEntry]:
        """
        Encaissement: debit tresorerie, credit clients.
        """
        number = invoice.number
        return self.post_entry(
            entry_date=payment.payment_date,
            reference=f"PAY-{number}",
            description=f"Reglement facture {number} - {invoice.client_name}",
            journal_type=journal_for_method(payment.payment_method),
            lines=[
                EntryLine(
                    self.account_resolver.treasury_code(payment.payment_method),
                    debit=payment.amount,
                    label=f"Encaissement {number}",
                ),
                EntryLine(
                    self.account_resolver.code_for("client_receivable"),
                    credit=payment.amount,
                    label=f"Reglement client {number}",
                ),
            ],
            source_type="payment",
            source_id=payment.id,
        )

    def post_supplier_payment(
        self,
        supplier_invoice: SupplierInvoice,
        payment: SupplierPayment,
    ) -> Optional[JournalEntry]:
        """
        Decaissement: debit fournisseurs, credit tresorerie.
        """
        number = supplier_invoice.number
        return self.post_entry(
            entry_date=payment.payment_date,
            reference=f"PAY-{number}",
            description=f"Reglement facture fournisseur {number} - {supplier_invoice.supplier_name}",
            journal_type=journal_for_method(payment.payment_method),
            lines=[
                EntryLine(
                    self.account_resolver.code_for("supplier_payable"),
                    debit=payment.amount,
                    label=f"Reglement fournisseur {number}",
                ),
                EntryLine(
                    self.account_resolver.treasury_code(payment.payment_method),
                    credit=payment.amount,
                    label=f"Decaissement {number}",
                ),
            ],
            source_type="supplier_payment",
            source_id=payment.id,
        )
