"""Initial accounting core schema

Revision ID: a1c4e7f20b3d
Revises:
Create Date: 2026-10-19

Tables:
- accounts: Plan comptable par societe
- fiscal_years: Exercices (sans chevauchement, contrainte EXCLUDE)
- journal_entries / journal_lines: Ecritures en partie double
- invoices / invoice_lines / payments: Facturation client
- supplier_invoices / supplier_payments: Factures fournisseurs
- bank_accounts / bank_matching_rules / bank_transactions: Banque
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM


revision = 'a1c4e7f20b3d'
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    'account_type': ('ASSET', 'LIABILITY', 'EQUITY', 'REVENUE', 'EXPENSE'),
    'journal_type': ('SALES', 'PURCHASES', 'BANK', 'CASH', 'GENERAL'),
    'invoice_status': ('DRAFT', 'SENT', 'PARTIALLY_PAID', 'PAID', 'OVERDUE', 'CANCELLED'),
    'supplier_invoice_status': ('PENDING', 'APPROVED', 'PARTIALLY_PAID', 'PAID', 'OVERDUE', 'CANCELLED'),
    'payment_method': ('CASH', 'BANK_TRANSFER', 'CHECK', 'MOBILE_MONEY', 'CARD', 'OTHER'),
    'matched_type': ('client', 'supplier'),
    'transaction_source': ('import', 'manual'),
}


def _enum(name: str) -> ENUM:
    return ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create accounting core tables."""

    # ========================================
    # 1. EXTENSIONS ET ENUMS
    # ========================================
    # btree_gist: egalite sur company_id dans la contrainte EXCLUDE
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist;")

    for name, values in ENUMS.items():
        labels = ", ".join(f"'{value}'" for value in values)
        op.execute(f"""
            DO $$
            BEGIN
                IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = '{name}') THEN
                    CREATE TYPE {name} AS ENUM ({labels});
                END IF;
            END $$;
        """)

    # ========================================
    # 2. COMPTABILITE
    # ========================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('type', _enum('account_type'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'code', name='uq_accounts_company_code'),
    )

    op.create_table(
        'fiscal_years',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('start_date <= end_date', name='ck_fiscal_years_range'),
    )
    op.create_index('ix_fiscal_years_company_range', 'fiscal_years', ['company_id', 'start_date', 'end_date'])
    # Deux exercices d'une meme societe ne se chevauchent jamais
    op.execute("""
        ALTER TABLE fiscal_years ADD CONSTRAINT ex_fiscal_years_no_overlap
        EXCLUDE USING gist (
            company_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        );
    """)

    op.create_table(
        'journal_entries',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('fiscal_year_id', sa.BigInteger(), sa.ForeignKey('fiscal_years.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('reference', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('journal_type', _enum('journal_type'), nullable=False),
        sa.Column('is_validated', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('source_type', sa.Text(), nullable=True),
        sa.Column('source_id', sa.BigInteger(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_journal_entries_company_date', 'journal_entries', ['company_id', 'entry_date'])
    op.create_index('ix_journal_entries_source', 'journal_entries', ['source_type', 'source_id'])

    op.create_table(
        'journal_lines',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('entry_id', sa.BigInteger(), sa.ForeignKey('journal_entries.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('account_id', sa.BigInteger(), sa.ForeignKey('accounts.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('debit', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('credit', sa.BigInteger(), server_default='0', nullable=False),
        sa.CheckConstraint('debit >= 0 AND credit >= 0', name='ck_journal_lines_positive'),
        sa.CheckConstraint('(debit = 0) <> (credit = 0)', name='ck_journal_lines_one_side'),
    )

    # ========================================
    # 3. BANQUE (avant les paiements qui la referencent)
    # ========================================
    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('bank_name', sa.Text(), nullable=True),
        sa.Column('account_number', sa.Text(), nullable=True),
        sa.Column('currency', sa.Text(), server_default='XOF', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('current_balance', sa.BigInteger(), server_default='0', nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'bank_matching_rules',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('priority', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('label_contains', sa.Text(), nullable=True),
        sa.Column('amount_min', sa.BigInteger(), nullable=True),
        sa.Column('amount_max', sa.BigInteger(), nullable=True),
        sa.Column('amount_equals', sa.BigInteger(), nullable=True),
        sa.Column('assign_account_id', sa.BigInteger(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('auto_reconcile', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index(
        'ix_bank_matching_rules_company_priority',
        'bank_matching_rules',
        ['company_id', 'is_active', 'priority'],
    )

    op.create_table(
        'bank_transactions',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('bank_account_id', sa.BigInteger(), sa.ForeignKey('bank_accounts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('label', sa.Text(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('reference', sa.Text(), nullable=True),
        sa.Column('is_reconciled', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('reconciled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('matched_invoice_id', sa.BigInteger(), nullable=True),
        sa.Column('matched_type', _enum('matched_type'), nullable=True),
        sa.Column('assigned_account_id', sa.BigInteger(), sa.ForeignKey('accounts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('matching_rule_id', sa.BigInteger(), sa.ForeignKey('bank_matching_rules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('source', _enum('transaction_source'), server_default='manual', nullable=False),
        sa.Column('imported_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bank_transactions_account_date', 'bank_transactions', ['bank_account_id', 'transaction_date'])
    op.create_index('ix_bank_transactions_account_reconciled', 'bank_transactions', ['bank_account_id', 'is_reconciled'])

    # ========================================
    # 4. FACTURATION
    # ========================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('number', sa.Text(), nullable=False),
        sa.Column('client_name', sa.Text(), nullable=False),
        sa.Column('client_ifu', sa.Text(), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('total_ht', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_tva', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_ttc', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('amount_paid', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('status', _enum('invoice_status'), server_default='DRAFT', nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('mecef_nim', sa.Text(), nullable=True),
        sa.Column('mecef_counters', sa.Text(), nullable=True),
        sa.Column('mecef_dtc', sa.Text(), nullable=True),
        sa.Column('mecef_qr_code', sa.Text(), nullable=True),
        sa.Column('mecef_signature', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_invoices_company_status', 'invoices', ['company_id', 'status'])
    op.create_index('ix_invoices_company_number', 'invoices', ['company_id', 'number'], unique=True)

    op.create_table(
        'invoice_lines',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('invoice_id', sa.BigInteger(), sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.BigInteger(), server_default='1', nullable=False),
        sa.Column('unit_price_ht', sa.BigInteger(), nullable=False),
        sa.Column('tva_rate', sa.BigInteger(), server_default='1800', nullable=False),
        sa.Column('total_ht', sa.BigInteger(), nullable=False),
        sa.Column('total_tva', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_ttc', sa.BigInteger(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('invoice_id', sa.BigInteger(), sa.ForeignKey('invoices.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('bank_transaction_id', sa.BigInteger(), sa.ForeignKey('bank_transactions.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', _enum('payment_method'), nullable=False),
        sa.Column('reference', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_payments_amount_positive'),
    )

    op.create_table(
        'supplier_invoices',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('company_id', sa.BigInteger(), nullable=False, index=True),
        sa.Column('number', sa.Text(), nullable=False),
        sa.Column('supplier_name', sa.Text(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('total_ht', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_tva', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('total_ttc', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('amount_paid', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('status', _enum('supplier_invoice_status'), server_default='PENDING', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_supplier_invoices_company_status', 'supplier_invoices', ['company_id', 'status'])

    op.create_table(
        'supplier_payments',
        sa.Column('id', sa.BigInteger(), primary_key=True),
        sa.Column('supplier_invoice_id', sa.BigInteger(), sa.ForeignKey('supplier_invoices.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('bank_transaction_id', sa.BigInteger(), sa.ForeignKey('bank_transactions.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', _enum('payment_method'), nullable=False),
        sa.Column('reference', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_supplier_payments_amount_positive'),
    )


def downgrade() -> None:
    """Drop accounting core tables."""

    # Drop tables in reverse order (dependencies first)
    tables = [
        'supplier_payments',
        'supplier_invoices',
        'payments',
        'invoice_lines',
        'invoices',
        'bank_transactions',
        'bank_matching_rules',
        'bank_accounts',
        'journal_lines',
        'journal_entries',
        'fiscal_years',
        'accounts',
    ]

    for table in tables:
        op.drop_table(table)

    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name};")
