"""events, ticket holders and registry state

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('date', sa.BigInteger(), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('max_tickets', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    op.create_table(
        'ticket_holders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('holder', sa.String(length=128), nullable=False),
        sa.Column('acquired_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'holder', name='uq_ticket_holder_event_holder'),
    )
    op.create_index(op.f('ix_ticket_holders_event_id'), 'ticket_holders', ['event_id'])
    op.create_index(op.f('ix_ticket_holders_holder'), 'ticket_holders', ['holder'])
    op.create_index('idx_ticket_holder_holder_event', 'ticket_holders', ['holder', 'event_id'])

    op.create_table(
        'registry_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner', sa.String(length=128), nullable=False),
        sa.Column('balance', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('registry_state')
    op.drop_index('idx_ticket_holder_holder_event', table_name='ticket_holders')
    op.drop_index(op.f('ix_ticket_holders_holder'), table_name='ticket_holders')
    op.drop_index(op.f('ix_ticket_holders_event_id'), table_name='ticket_holders')
    op.drop_table('ticket_holders')
    op.drop_table('events')
