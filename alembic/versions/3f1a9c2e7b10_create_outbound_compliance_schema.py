"""create outbound compliance schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-18 09:12:41.118532

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
        sa.Column('last_changed_by', sa.String(length=255), server_default=sa.text("'system@local'"), nullable=False),
    ]


def upgrade() -> None:
    # 1. Master data read by the engine
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('ein', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'parts',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('hts_code', sa.String(length=20), nullable=True),
        sa.Column('country_of_origin', sa.String(length=2), nullable=True),
        sa.Column('standard_value', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('unit_of_measure', sa.String(length=10), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'inventory_lots',
        sa.Column('id', sa.String(length=50), nullable=False),
        sa.Column('part_id', sa.String(length=50), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('current_quantity', sa.Numeric(precision=15, scale=3), server_default='0', nullable=False),
        sa.Column('status', sa.String(length=30), server_default='Available', nullable=False),
        sa.Column('ftz_status', sa.String(length=1), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('last_shipped_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['part_id'], ['parts.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'])
    )
    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lot_id', sa.String(length=50), nullable=False),
        sa.Column('transaction_type', sa.String(length=30), nullable=False),
        sa.Column('quantity_change', sa.Numeric(precision=15, scale=3), nullable=False),
        sa.Column('resulting_quantity', sa.Numeric(precision=15, scale=3), nullable=False),
        sa.Column('reference_id', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['lot_id'], ['inventory_lots.id'])
    )
    op.create_index('ix_inventory_transactions_lot_id', 'inventory_transactions', ['lot_id'])

    # 2. Number ranges
    op.create_table(
        'sys_number_ranges',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('doc_category', sa.String(length=20), nullable=False),
        sa.Column('doc_type_id', sa.Integer(), server_default='0', nullable=False),
        sa.Column('prefix', sa.String(length=10), nullable=False),
        sa.Column('current_value', sa.BigInteger(), server_default='0', nullable=True),
        sa.Column('padding', sa.Integer(), server_default='8', nullable=True),
        sa.Column('include_year', sa.Boolean(), server_default=sa.text('false'), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('doc_category', 'doc_type_id', name='uix_category_type')
    )

    # 3. Preshipments
    op.create_table(
        'preshipments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('shipment_id', sa.String(length=50), nullable=False),
        sa.Column('shipment_type', sa.String(length=40), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('stage', sa.String(length=20), server_default='Planning', nullable=False),
        sa.Column('priority', sa.String(length=10), server_default='Normal', nullable=False),
        sa.Column('requested_ship_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('filing_district_port', sa.String(length=4), nullable=True),
        sa.Column('entry_filer_code', sa.String(length=3), nullable=True),
        sa.Column('importer_of_record_number', sa.String(length=20), nullable=True),
        sa.Column('foreign_trade_zone_id', sa.String(length=20), nullable=True),
        sa.Column('entry_type_code', sa.String(length=2), nullable=True),
        sa.Column('date_of_importation', sa.Date(), nullable=True),
        sa.Column('consolidated_entry', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('bill_of_lading_number', sa.String(length=50), nullable=True),
        sa.Column('voyage_flight_trip_number', sa.String(length=20), nullable=True),
        sa.Column('carrier_code', sa.String(length=4), nullable=True),
        sa.Column('importing_conveyance_name', sa.String(length=100), nullable=True),
        sa.Column('mode_of_transportation', sa.String(length=2), nullable=True),
        sa.Column('port_of_unlading', sa.String(length=4), nullable=True),
        sa.Column('manufacturer_name', sa.String(length=255), nullable=True),
        sa.Column('manufacturer_address', sa.String(length=255), nullable=True),
        sa.Column('seller_name', sa.String(length=255), nullable=True),
        sa.Column('seller_address', sa.String(length=255), nullable=True),
        sa.Column('bond_type_code', sa.String(length=1), nullable=True),
        sa.Column('surety_company_code', sa.String(length=3), nullable=True),
        sa.Column('staging_location', sa.String(length=50), nullable=True),
        sa.Column('staging_notes', sa.Text(), nullable=True),
        sa.Column('staged_by', sa.String(length=255), nullable=True),
        sa.Column('ready_at', sa.DateTime(), nullable=True),
        sa.Column('staged_at', sa.DateTime(), nullable=True),
        sa.Column('driver_name', sa.String(length=100), nullable=True),
        sa.Column('driver_license_number', sa.String(length=50), nullable=True),
        sa.Column('license_plate_number', sa.String(length=20), nullable=True),
        sa.Column('carrier_name', sa.String(length=100), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('driver_notes', sa.Text(), nullable=True),
        sa.Column('signature_data', sa.JSON(), nullable=True),
        sa.Column('shipped_at', sa.DateTime(), nullable=True),
        sa.Column('signed_off_by', sa.String(length=255), nullable=True),
        sa.Column('entry_summary_id', sa.Integer(), nullable=True),
        sa.Column('entry_number', sa.String(length=30), nullable=True),
        sa.Column('entry_summary_status', sa.String(length=20), server_default='NOT_PREPARED', nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'])
    )
    op.create_index('ix_preshipments_shipment_id', 'preshipments', ['shipment_id'], unique=True)
    op.create_index('ix_preshipments_stage', 'preshipments', ['stage'])
    op.create_index('ix_preshipments_entry_summary_id', 'preshipments', ['entry_summary_id'])

    op.create_table(
        'preshipment_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('preshipment_id', sa.Integer(), nullable=False),
        sa.Column('item_number', sa.Integer(), nullable=False),
        sa.Column('part_id', sa.String(length=50), nullable=True),
        sa.Column('lot_id', sa.String(length=50), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=15, scale=3), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=10), nullable=True),
        sa.Column('unit_value', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('total_value', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('hts_code', sa.String(length=20), nullable=True),
        sa.Column('country_of_origin', sa.String(length=2), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('duty_rate', sa.Numeric(precision=8, scale=4), nullable=True),
        sa.Column('duty_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['preshipment_id'], ['preshipments.id'], ondelete='CASCADE')
    )
    op.create_index('ix_preshipment_items_preshipment_id', 'preshipment_items', ['preshipment_id'])

    op.create_table(
        'preshipment_stage_audit',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('preshipment_id', sa.Integer(), nullable=False),
        sa.Column('from_stage', sa.String(length=20), nullable=False),
        sa.Column('to_stage', sa.String(length=20), nullable=False),
        sa.Column('changed_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('changed_by', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['preshipment_id'], ['preshipments.id'])
    )
    op.create_index('ix_preshipment_stage_audit_preshipment_id', 'preshipment_stage_audit', ['preshipment_id'])

    op.create_table(
        'shipment_completions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('preshipment_id', sa.Integer(), nullable=False),
        sa.Column('shipment_id', sa.String(length=50), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
        sa.Column('driver_name', sa.String(length=100), nullable=False),
        sa.Column('driver_license', sa.String(length=50), nullable=False),
        sa.Column('license_plate', sa.String(length=20), nullable=False),
        sa.Column('completed_by', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['preshipment_id'], ['preshipments.id'])
    )
    op.create_index('ix_shipment_completions_preshipment_id', 'shipment_completions', ['preshipment_id'])

    # 4. Entry summary groups
    op.create_table(
        'entry_summary_groups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_name', sa.String(length=120), nullable=False),
        sa.Column('group_description', sa.Text(), nullable=True),
        sa.Column('week_ending_date', sa.Date(), nullable=True),
        sa.Column('target_entry_date', sa.Date(), nullable=True),
        sa.Column('filing_district_port', sa.String(length=4), nullable=False),
        sa.Column('entry_filer_code', sa.String(length=3), nullable=False),
        sa.Column('foreign_trade_zone_identifier', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='draft', nullable=False),
        sa.Column('entry_number', sa.String(length=30), nullable=True),
        sa.Column('filed_at', sa.DateTime(), nullable=True),
        sa.Column('filed_by', sa.String(length=255), nullable=True),
        sa.Column('estimated_total_value', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('estimated_total_duties', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_entry_summary_groups_status', 'entry_summary_groups', ['status'])

    op.create_table(
        'entry_group_preshipments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('preshipment_id', sa.Integer(), nullable=False),
        sa.Column('assignment_notes', sa.Text(), nullable=True),
        sa.Column('preshipment_status', sa.String(length=20), nullable=True),
        sa.Column('preshipment_value', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('preshipment_parts_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('validated', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('validation_warnings', sa.JSON(), nullable=True),
        sa.Column('added_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('added_by', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['group_id'], ['entry_summary_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['preshipment_id'], ['preshipments.id']),
        sa.UniqueConstraint('group_id', 'preshipment_id', name='uix_group_preshipment')
    )
    op.create_index('ix_entry_group_preshipments_group_id', 'entry_group_preshipments', ['group_id'])
    op.create_index('ix_entry_group_preshipments_preshipment_id', 'entry_group_preshipments', ['preshipment_id'])

    # 5. Entry summaries (ACE type 06)
    op.create_table(
        'entry_summaries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entry_number', sa.String(length=30), nullable=False),
        sa.Column('entry_type_code', sa.String(length=2), server_default='06', nullable=False),
        sa.Column('summary_filing_action_request_code', sa.String(length=1), server_default='A', nullable=False),
        sa.Column('record_district_port_of_entry', sa.String(length=4), nullable=False),
        sa.Column('entry_filer_code', sa.String(length=3), nullable=False),
        sa.Column('consolidated_summary_indicator', sa.String(length=1), server_default='N', nullable=False),
        sa.Column('importer_of_record_number', sa.String(length=20), nullable=True),
        sa.Column('consignee_id', sa.Integer(), nullable=True),
        sa.Column('date_of_importation', sa.Date(), nullable=True),
        sa.Column('foreign_trade_zone_identifier', sa.String(length=20), nullable=True),
        sa.Column('bill_of_lading_number', sa.String(length=50), nullable=True),
        sa.Column('voyage_flight_trip_number', sa.String(length=20), nullable=True),
        sa.Column('carrier_code', sa.String(length=4), nullable=True),
        sa.Column('importing_conveyance_name', sa.String(length=100), nullable=True),
        sa.Column('mode_of_transportation', sa.String(length=2), nullable=True),
        sa.Column('port_of_unlading', sa.String(length=4), nullable=True),
        sa.Column('manufacturer_name', sa.String(length=255), nullable=True),
        sa.Column('manufacturer_address', sa.String(length=255), nullable=True),
        sa.Column('seller_name', sa.String(length=255), nullable=True),
        sa.Column('seller_address', sa.String(length=255), nullable=True),
        sa.Column('bond_type_code', sa.String(length=1), nullable=True),
        sa.Column('surety_company_code', sa.String(length=3), nullable=True),
        sa.Column('filing_status', sa.String(length=10), server_default='DRAFT', nullable=False),
        sa.Column('filed_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('ace_response_message', sa.Text(), nullable=True),
        sa.Column('preshipment_id', sa.Integer(), nullable=True),
        sa.Column('group_id', sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['consignee_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['preshipment_id'], ['preshipments.id']),
        sa.ForeignKeyConstraint(['group_id'], ['entry_summary_groups.id'])
    )
    op.create_index('ix_entry_summaries_entry_number', 'entry_summaries', ['entry_number'], unique=True)
    op.create_index('ix_entry_summaries_filing_status', 'entry_summaries', ['filing_status'])
    op.create_index('ix_entry_summaries_preshipment_id', 'entry_summaries', ['preshipment_id'])
    op.create_index('ix_entry_summaries_group_id', 'entry_summaries', ['group_id'])

    op.create_table(
        'entry_summary_line_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entry_summary_id', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('hts_code', sa.String(length=12), nullable=False),
        sa.Column('country_of_origin', sa.String(length=3), nullable=False),
        sa.Column('commodity_description', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=15, scale=3), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=10), nullable=True),
        sa.Column('unit_value', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('total_value', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('duty_rate', sa.Numeric(precision=8, scale=4), server_default='0', nullable=False),
        sa.Column('duty_amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('antidumping_duty_amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('countervailing_duty_amount', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False),
        sa.Column('part_id', sa.String(length=50), nullable=True),
        sa.Column('lot_id', sa.String(length=50), nullable=True),
        sa.Column('source_preshipments', sa.JSON(), nullable=True),
        sa.Column('source_customers', sa.Text(), nullable=True),
        sa.Column('consolidated_from_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['entry_summary_id'], ['entry_summaries.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('entry_summary_id', 'line_number', name='uix_entry_line_number')
    )
    op.create_index('ix_entry_summary_line_items_entry_summary_id', 'entry_summary_line_items', ['entry_summary_id'])

    op.create_table(
        'ftz_status_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entry_line_item_id', sa.Integer(), nullable=False),
        sa.Column('ftz_line_item_quantity', sa.Numeric(precision=15, scale=3), nullable=False),
        sa.Column('ftz_merchandise_status_code', sa.String(length=1), server_default='P', nullable=False),
        sa.Column('privileged_ftz_merchandise_filing_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['entry_line_item_id'], ['entry_summary_line_items.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('entry_line_item_id')
    )

    op.create_table(
        'entry_grand_totals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entry_summary_id', sa.Integer(), nullable=False),
        sa.Column('total_entered_value', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('grand_total_duty_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('grand_total_user_fee_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('grand_total_tax_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('grand_total_antidumping_duty_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('grand_total_countervailing_duty_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('estimated_total_amount', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('calculated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['entry_summary_id'], ['entry_summaries.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('entry_summary_id')
    )


def downgrade() -> None:
    op.drop_table('entry_grand_totals')
    op.drop_table('ftz_status_records')
    op.drop_index('ix_entry_summary_line_items_entry_summary_id', table_name='entry_summary_line_items')
    op.drop_table('entry_summary_line_items')
    op.drop_index('ix_entry_summaries_group_id', table_name='entry_summaries')
    op.drop_index('ix_entry_summaries_preshipment_id', table_name='entry_summaries')
    op.drop_index('ix_entry_summaries_filing_status', table_name='entry_summaries')
    op.drop_index('ix_entry_summaries_entry_number', table_name='entry_summaries')
    op.drop_table('entry_summaries')
    op.drop_index('ix_entry_group_preshipments_preshipment_id', table_name='entry_group_preshipments')
    op.drop_index('ix_entry_group_preshipments_group_id', table_name='entry_group_preshipments')
    op.drop_table('entry_group_preshipments')
    op.drop_index('ix_entry_summary_groups_status', table_name='entry_summary_groups')
    op.drop_table('entry_summary_groups')
    op.drop_index('ix_shipment_completions_preshipment_id', table_name='shipment_completions')
    op.drop_table('shipment_completions')
    op.drop_index('ix_preshipment_stage_audit_preshipment_id', table_name='preshipment_stage_audit')
    op.drop_table('preshipment_stage_audit')
    op.drop_index('ix_preshipment_items_preshipment_id', table_name='preshipment_items')
    op.drop_table('preshipment_items')
    op.drop_index('ix_preshipments_entry_summary_id', table_name='preshipments')
    op.drop_index('ix_preshipments_stage', table_name='preshipments')
    op.drop_index('ix_preshipments_shipment_id', table_name='preshipments')
    op.drop_table('preshipments')
    op.drop_table('sys_number_ranges')
    op.drop_index('ix_inventory_transactions_lot_id', table_name='inventory_transactions')
    op.drop_table('inventory_transactions')
    op.drop_table('inventory_lots')
    op.drop_table('parts')
    op.drop_table('customers')
