"""crm core schema

Revision ID: 5c1d2e7a9b40
Revises:
Create Date: 2026-10-18 09:12:44.103515

Creates the tenant-scoped CRM tables used by duplicate detection and merge:
customers, leads, their dependents, and the audit log.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c1d2e7a9b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tenant_entity_columns():
    return [
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_by', sa.String(length=36), nullable=True),
    ]


def _tenant_entity_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'])
    op.create_index(f'ix_{table}_is_deleted', table, ['is_deleted'])


def upgrade() -> None:
    op.create_table(
        'customers',
        *_tenant_entity_columns(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=100)),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('first_name', sa.String(length=100)),
        sa.Column('last_name', sa.String(length=100)),
        sa.Column('company_name', sa.String(length=200)),
        sa.Column('tax_id', sa.String(length=50)),
        sa.Column('address_line1', sa.String(length=500)),
        sa.Column('city', sa.String(length=100)),
        sa.Column('state', sa.String(length=100)),
        sa.Column('postal_code', sa.String(length=20)),
        sa.Column('country', sa.String(length=100)),
    )
    _tenant_entity_indexes('customers')
    op.create_index('ix_customers_tenant_email', 'customers', ['tenant_id', 'email'])

    op.create_table(
        'leads',
        *_tenant_entity_columns(),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('first_name', sa.String(length=100)),
        sa.Column('last_name', sa.String(length=100)),
        sa.Column('email', sa.String(length=100)),
        sa.Column('phone', sa.String(length=20)),
        sa.Column('company_name', sa.String(length=200)),
    )
    _tenant_entity_indexes('leads')
    op.create_index('ix_leads_tenant_email', 'leads', ['tenant_id', 'email'])

    op.create_table(
        'contacts',
        *_tenant_entity_columns(),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id')),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100)),
        sa.Column('email', sa.String(length=100)),
        sa.Column('phone', sa.String(length=20)),
    )
    _tenant_entity_indexes('contacts')
    op.create_index('ix_contacts_customer_id', 'contacts', ['customer_id'])

    op.create_table(
        'interactions',
        *_tenant_entity_columns(),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id')),
        sa.Column('lead_id', sa.String(length=36), sa.ForeignKey('leads.id')),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text()),
    )
    _tenant_entity_indexes('interactions')
    op.create_index('ix_interactions_customer_id', 'interactions', ['customer_id'])
    op.create_index('ix_interactions_lead_id', 'interactions', ['lead_id'])

    op.create_table(
        'opportunities',
        *_tenant_entity_columns(),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id')),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2)),
        sa.Column('stage', sa.String(length=50)),
    )
    _tenant_entity_indexes('opportunities')
    op.create_index('ix_opportunities_customer_id', 'opportunities', ['customer_id'])

    op.create_table(
        'tickets',
        *_tenant_entity_columns(),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id')),
        sa.Column('subject', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=50)),
    )
    _tenant_entity_indexes('tickets')
    op.create_index('ix_tickets_customer_id', 'tickets', ['customer_id'])

    op.create_table(
        'activities',
        *_tenant_entity_columns(),
        sa.Column('lead_id', sa.String(length=36), sa.ForeignKey('leads.id')),
        sa.Column('customer_id', sa.String(length=36), sa.ForeignKey('customers.id')),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('subject', sa.String(length=200), nullable=False),
    )
    _tenant_entity_indexes('activities')
    op.create_index('ix_activities_lead_id', 'activities', ['lead_id'])
    op.create_index('ix_activities_customer_id', 'activities', ['customer_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('tenant_id', sa.String(length=36), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.String(length=36), nullable=True),
        sa.Column('entity_name', sa.String(length=200), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_tenant_id', 'audit_logs', ['tenant_id'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    for table in (
        'audit_logs', 'activities', 'tickets', 'opportunities',
        'interactions', 'contacts', 'leads', 'customers',
    ):
        op.drop_table(table)
