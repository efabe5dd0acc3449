"""initial schema

Revision ID: gb0001
Revises:
Create Date: 2026-01-15 00:00:00.000000

Creates the jewelry back-office schema:
- customers, items, metal_rates, document_sequences
- bills with bill_items, advance_bookings, layaway_transactions
- old_gold_exchanges (bill link nullable: NULL is a walk-in exchange)
- purchase_bills with purchase_items

Money columns are integer paise; weights are integer milligrams.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'gb0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # customers: phone is a lookup key, not unique
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'])

    # ============================================================================
    # metal_rates: one published rate per metal type per business date
    # ============================================================================
    op.create_table(
        'metal_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('metal_type', sa.String(length=32), nullable=False),
        sa.Column('rate_date', sa.Date(), nullable=False),
        sa.Column('rate_paise', sa.Integer(), nullable=False),
        sa.Column('created_by_staff_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('metal_type', 'rate_date', name='uq_metal_rates_type_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_metal_rates_type_date', 'metal_rates', ['metal_type', 'rate_date'])

    # ============================================================================
    # items: barcode templates that pre-fill a bill line
    # ============================================================================
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('metal_type', sa.String(length=32), nullable=False, server_default='gold'),
        sa.Column('purity', sa.String(length=32), nullable=True),
        sa.Column('weight_mg', sa.Integer(), nullable=True),
        sa.Column('making_charge_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('stock_status', sa.String(length=16), nullable=False, server_default='in_stock'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_barcode', 'items', ['barcode'], unique=True)

    # ============================================================================
    # document_sequences: daily counters for bill numbers
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('sequence_key', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'sequence_key', name='uq_document_sequences_type_key'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # bills
    # ============================================================================
    op.create_table(
        'bills',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_no', sa.String(length=64), nullable=False),
        sa.Column('bill_date', sa.Date(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('bill_type', sa.String(length=32), nullable=False, server_default='SALE'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('sale_type', sa.String(length=16), nullable=False, server_default='gst'),
        sa.Column('tax_mode', sa.String(length=16), nullable=False, server_default='intrastate'),
        sa.Column('subtotal_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cgst_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sgst_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('igst_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grand_total_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_locked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('updated_by_staff_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bills_bill_no', 'bills', ['bill_no'], unique=True)
    op.create_index('ix_bills_customer_id', 'bills', ['customer_id'])
    op.create_index('ix_bills_bill_type', 'bills', ['bill_type'])
    op.create_index('ix_bills_status', 'bills', ['status'])
    op.create_index('ix_bills_customer_date', 'bills', ['customer_id', 'bill_date'])

    op.create_table(
        'bill_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('serial_no', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('metal_type', sa.String(length=32), nullable=False),
        sa.Column('purity', sa.String(length=32), nullable=True),
        sa.Column('hsn_code', sa.String(length=16), nullable=False, server_default='711319'),
        sa.Column('weight_mg', sa.Integer(), nullable=False),
        sa.Column('rate_paise', sa.Integer(), nullable=False),
        sa.Column('making_charge_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('line_total_paise', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bill_items_bill_id', 'bill_items', ['bill_id'])

    # ============================================================================
    # advance_bookings: at most one per bill, 0 < advance <= total
    # ============================================================================
    op.create_table(
        'advance_bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('advance_paise', sa.Integer(), nullable=False),
        sa.Column('total_paise', sa.Integer(), nullable=False),
        sa.Column('item_description', sa.Text(), nullable=True),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        *_timestamps(),
        sa.CheckConstraint('advance_paise > 0', name='ck_advance_bookings_advance_positive'),
        sa.CheckConstraint('advance_paise <= total_paise', name='ck_advance_bookings_advance_le_total'),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_advance_bookings_bill_id', 'advance_bookings', ['bill_id'], unique=True)
    op.create_index('ix_advance_bookings_status', 'advance_bookings', ['status'])

    # ============================================================================
    # layaway_transactions: append-only payments against a bill
    # ============================================================================
    op.create_table(
        'layaway_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('amount_paise', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('amount_paise > 0', name='ck_layaway_transactions_amount_positive'),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_layaway_transactions_bill_id', 'layaway_transactions', ['bill_id'])
    op.create_index('ix_layaway_transactions_bill_date', 'layaway_transactions', ['bill_id', 'payment_date'])

    # ============================================================================
    # old_gold_exchanges: bill_id NULL means a standalone walk-in exchange
    # ============================================================================
    op.create_table(
        'old_gold_exchanges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=True),
        sa.Column('weight_mg', sa.Integer(), nullable=False),
        sa.Column('metal_type', sa.String(length=32), nullable=False, server_default='gold'),
        sa.Column('purity', sa.String(length=64), nullable=True),
        sa.Column('rate_paise', sa.Integer(), nullable=False),
        sa.Column('total_value_paise', sa.Integer(), nullable=False),
        sa.Column('particulars', sa.String(length=255), nullable=True),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_staff_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_old_gold_exchanges_bill_id', 'old_gold_exchanges', ['bill_id'])
    op.create_index('ix_old_gold_exchanges_created', 'old_gold_exchanges', ['created_at'])

    # ============================================================================
    # purchase_bills / purchase_items: pink slips
    # ============================================================================
    op.create_table(
        'purchase_bills',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_no', sa.String(length=64), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('subtotal_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cgst_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sgst_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grand_total_paise', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_bills_bill_no', 'purchase_bills', ['bill_no'], unique=True)
    op.create_index('ix_purchase_bills_customer_id', 'purchase_bills', ['customer_id'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_bill_id', sa.Integer(), nullable=False),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('purity', sa.String(length=32), nullable=True),
        sa.Column('metal_type', sa.String(length=32), nullable=False),
        sa.Column('weight_mg', sa.Integer(), nullable=False),
        sa.Column('rate_paise', sa.Integer(), nullable=False),
        sa.Column('amount_paise', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_bill_id'], ['purchase_bills.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_items_purchase_bill_id', 'purchase_items', ['purchase_bill_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('purchase_items')
    op.drop_table('purchase_bills')
    op.drop_table('old_gold_exchanges')
    op.drop_table('layaway_transactions')
    op.drop_table('advance_bookings')
    op.drop_table('bill_items')
    op.drop_table('bills')
    op.drop_table('document_sequences')
    op.drop_table('items')
    op.drop_table('metal_rates')
    op.drop_table('customers')
