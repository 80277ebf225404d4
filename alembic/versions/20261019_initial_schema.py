"""Initial schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Tables:
- user: accounts and roles
- executor: executor profiles
- service_request: maintenance requests
- reschedule_request: visit time proposals
- notification: in-app notifications
- activity_log: staff activity feed
- marketplace_order / marketplace_order_item: courier deliveries
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '20261019_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # === USER ===
    op.create_table('user',
        *_base_columns(),
        sa.Column('login', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('role', sa.String(30), nullable=False),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('apartment', sa.String(20), nullable=True),
        sa.Column('building', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id', name='pk_user'),
    )
    op.create_index('ix_user_login', 'user', ['login'], unique=True)
    op.create_index('idx_user_role_active', 'user', ['role', 'is_active'], unique=False)

    # === EXECUTOR ===
    op.create_table('executor',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('specialization', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('rating', sa.Float(), nullable=False),
        sa.Column('completed_count', sa.Integer(), nullable=False),
        sa.Column('active_requests', sa.Integer(), nullable=False),
        sa.Column('total_earnings', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_executor_user_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_executor'),
        sa.UniqueConstraint('user_id', name='uq_executor_user_id'),
    )
    op.create_index('ix_executor_specialization', 'executor', ['specialization'], unique=False)

    # === SERVICE REQUEST ===
    op.create_table('service_request',
        *_base_columns(),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('resident_id', sa.Uuid(), nullable=False),
        sa.Column('resident_name', sa.String(200), nullable=False),
        sa.Column('resident_phone', sa.String(30), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('apartment', sa.String(20), nullable=True),
        sa.Column('executor_id', sa.Uuid(), nullable=True),
        sa.Column('executor_name', sa.String(200), nullable=True),
        sa.Column('executor_phone', sa.String(30), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('scheduled_time', sa.String(20), nullable=True),
        sa.Column('access_info', sa.Text(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('work_duration', sa.Integer(), nullable=True),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_paused_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(20), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('rejection_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['resident_id'], ['user.id'], name='fk_service_request_resident_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['executor_id'], ['user.id'], name='fk_service_request_executor_id_user', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_service_request'),
        sa.UniqueConstraint('number', name='uq_service_request_number'),
    )
    op.create_index('idx_request_status_category', 'service_request', ['status', 'category'], unique=False)
    op.create_index('idx_request_executor_status', 'service_request', ['executor_id', 'status'], unique=False)
    op.create_index('idx_request_resident_status', 'service_request', ['resident_id', 'status'], unique=False)

    # === RESCHEDULE REQUEST ===
    op.create_table('reschedule_request',
        *_base_columns(),
        sa.Column('request_id', sa.Uuid(), nullable=False),
        sa.Column('initiator', sa.String(20), nullable=False),
        sa.Column('initiator_id', sa.Uuid(), nullable=False),
        sa.Column('initiator_name', sa.String(200), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_name', sa.String(200), nullable=False),
        sa.Column('recipient_role', sa.String(20), nullable=False),
        sa.Column('from_date', sa.Date(), nullable=True),
        sa.Column('from_time', sa.String(20), nullable=True),
        sa.Column('proposed_date', sa.Date(), nullable=False),
        sa.Column('proposed_time', sa.String(20), nullable=False),
        sa.Column('reason', sa.String(30), nullable=False),
        sa.Column('reason_text', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('response_note', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['service_request.id'], name='fk_reschedule_request_request_id_service_request', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['initiator_id'], ['user.id'], name='fk_reschedule_request_initiator_id_user'),
        sa.ForeignKeyConstraint(['recipient_id'], ['user.id'], name='fk_reschedule_request_recipient_id_user'),
        sa.PrimaryKeyConstraint('id', name='pk_reschedule_request'),
    )
    op.create_index('idx_reschedule_request_status', 'reschedule_request', ['request_id', 'status'], unique=False)
    op.create_index('idx_reschedule_recipient_status', 'reschedule_request', ['recipient_id', 'status'], unique=False)

    # === NOTIFICATION ===
    op.create_table('notification',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('request_id', sa.Uuid(), nullable=True),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_notification_user_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_notification'),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'], unique=False)
    op.create_index('ix_notification_request_id', 'notification', ['request_id'], unique=False)
    op.create_index('idx_notification_user_read', 'notification', ['user_id', 'is_read', 'created_at'], unique=False)

    # === ACTIVITY LOG ===
    op.create_table('activity_log',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('user_name', sa.String(200), nullable=False),
        sa.Column('user_role', sa.String(30), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('request_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_activity_log_user_id_user', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_activity_log'),
    )
    op.create_index('ix_activity_log_action', 'activity_log', ['action'], unique=False)
    op.create_index('idx_activity_request_created', 'activity_log', ['request_id', 'created_at'], unique=False)

    # === MARKETPLACE ORDER ===
    op.create_table('marketplace_order',
        *_base_columns(),
        sa.Column('order_number', sa.String(20), nullable=False),
        sa.Column('resident_id', sa.Uuid(), nullable=False),
        sa.Column('resident_name', sa.String(200), nullable=False),
        sa.Column('resident_phone', sa.String(30), nullable=True),
        sa.Column('resident_address', sa.String(500), nullable=True),
        sa.Column('resident_apartment', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('executor_id', sa.Uuid(), nullable=True),
        sa.Column('executor_name', sa.String(200), nullable=True),
        sa.Column('executor_phone', sa.String(30), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('items_count', sa.Integer(), nullable=False),
        sa.Column('delivery_note', sa.Text(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('preparing_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ready_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivering_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['resident_id'], ['user.id'], name='fk_marketplace_order_resident_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['executor_id'], ['user.id'], name='fk_marketplace_order_executor_id_user', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_marketplace_order'),
        sa.UniqueConstraint('order_number', name='uq_marketplace_order_order_number'),
    )
    op.create_index('ix_marketplace_order_resident_id', 'marketplace_order', ['resident_id'], unique=False)
    op.create_index('idx_order_status_created', 'marketplace_order', ['status', 'created_at'], unique=False)
    op.create_index('idx_order_executor_status', 'marketplace_order', ['executor_id', 'status'], unique=False)

    # === MARKETPLACE ORDER ITEM ===
    op.create_table('marketplace_order_item',
        *_base_columns(),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['marketplace_order.id'], name='fk_marketplace_order_item_order_id_marketplace_order', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_marketplace_order_item'),
    )
    op.create_index('ix_marketplace_order_item_order_id', 'marketplace_order_item', ['order_id'], unique=False)


def downgrade() -> None:
    op.drop_table('marketplace_order_item')
    op.drop_table('marketplace_order')
    op.drop_table('activity_log')
    op.drop_table('notification')
    op.drop_table('reschedule_request')
    op.drop_table('service_request')
    op.drop_table('executor')
    op.drop_table('user')
