"""Initial schema - SAM.gov opportunities, sync config and award cache

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')
EMPTY_LIST = sa.text("'[]'")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Sync configuration (one row per tenant)
    op.create_table(
        'sam_gov_sync_config',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', sa.String(64), nullable=False, unique=True),
        sa.Column('classification_codes', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('keywords', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('excluded_keywords', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('agencies', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('set_aside_types', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('min_value', sa.Numeric(15, 2), nullable=True),
        sa.Column('enabled', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('sync_interval_hours', sa.Integer, nullable=False, server_default='1'),
        sa.Column('notification_email', sa.String(255), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_success_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sync_status', sa.String(20), nullable=True),
        sa.Column('last_sync_error', sa.Text, nullable=True),
        sa.Column('total_opportunities_found', sa.Integer, nullable=False, server_default='0'),
        sa.Column('sync_lock_owner', sa.String(64), nullable=True),
        sa.Column('sync_lock_expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Opportunities admitted by the sync
    op.create_table(
        'sam_gov_opportunities',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('solicitation_number', sa.String(255), nullable=False),
        sa.Column('notice_id', sa.String(100), nullable=True),
        sa.Column('title', sa.Text, nullable=False, server_default=''),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('posted_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('response_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('classification_code', sa.String(10), nullable=True),
        sa.Column('naics_code', sa.String(10), nullable=True),
        sa.Column('set_aside_type', sa.String(100), nullable=True),
        sa.Column('agency', sa.String(255), nullable=True),
        sa.Column('office', sa.String(255), nullable=True),
        sa.Column('poc_name', sa.String(255), nullable=True),
        sa.Column('poc_email', sa.String(255), nullable=True),
        sa.Column('poc_phone', sa.String(50), nullable=True),
        sa.Column('ui_link', sa.Text, nullable=True),
        sa.Column('attachments', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('award_amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('awardee_name', sa.String(255), nullable=True),
        sa.Column('award_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('dismissed_reason', sa.Text, nullable=True),
        sa.Column('raw_data', JSON, nullable=True, comment='Raw SAM.gov payload'),
        *_timestamps(),
    )
    op.create_index('ix_sam_gov_opportunities_solicitation_number', 'sam_gov_opportunities', ['solicitation_number'], unique=True)
    op.create_index('ix_sam_gov_opportunities_posted_date', 'sam_gov_opportunities', ['posted_date'])
    op.create_index('ix_sam_gov_opportunities_classification_code', 'sam_gov_opportunities', ['classification_code'])
    op.create_index('ix_sam_gov_opportunities_status', 'sam_gov_opportunities', ['status'])

    # Historical award cache (insert-or-ignore, never updated)
    op.create_table(
        'sam_gov_award_cache',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('contract_number', sa.String(100), nullable=False),
        sa.Column('product_service_code', sa.String(10), nullable=True),
        sa.Column('naics_code', sa.String(10), nullable=True),
        sa.Column('description_keywords', JSON, nullable=False, server_default=EMPTY_LIST),
        sa.Column('award_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_value', sa.Numeric(15, 2), nullable=True),
        sa.Column('action_obligation', sa.Numeric(15, 2), nullable=True),
        sa.Column('quantity', sa.Integer, nullable=True),
        sa.Column('unit_price', sa.Numeric(15, 4), nullable=True),
        sa.Column('awardee_name', sa.String(255), nullable=True),
        sa.Column('awardee_cage', sa.String(20), nullable=True),
        sa.Column('awardee_uei', sa.String(20), nullable=True),
        sa.Column('contracting_agency', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('raw_data', JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sam_gov_award_cache_contract_number', 'sam_gov_award_cache', ['contract_number'], unique=True)
    op.create_index('ix_sam_gov_award_cache_product_service_code', 'sam_gov_award_cache', ['product_service_code'])
    op.create_index('ix_sam_gov_award_cache_naics_code', 'sam_gov_award_cache', ['naics_code'])
    op.create_index('ix_sam_gov_award_cache_award_date', 'sam_gov_award_cache', ['award_date'])


def downgrade() -> None:
    op.drop_table('sam_gov_award_cache')
    op.drop_table('sam_gov_opportunities')
    op.drop_table('sam_gov_sync_config')
