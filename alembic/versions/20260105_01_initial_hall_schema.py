"""
Alembic migration: Initial hall schema (rows, slots, tables, row calls, settings)
"""
from typing import Sequence, Union
# revision identifiers, used by Alembic.
revision: str = '20260105_01_initial_hall_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None
from alembic import op
import sqlalchemy as sa


def upgrade():
    op.create_table(
        'setting',
        sa.Column('key', sa.String(), primary_key=True),
        sa.Column('value', sa.String(), nullable=True),
    )
    op.create_table(
        'hall_row',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('color_hex', sa.String(length=9), nullable=False, server_default='#000000'),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('article', sa.String(), nullable=False, server_default=''),
    )
    op.create_index('ix_hall_row_name', 'hall_row', ['name'], unique=True)

    op.create_table(
        'pallet_slot',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('row_id', sa.Integer(), sa.ForeignKey('hall_row.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position_index', sa.Integer(), nullable=False),
        # SQLModel speichert Enum-Namen, nicht die Werte
        sa.Column('state', sa.Enum('EMPTY', 'OCCUPIED', 'IN_TRANSIT', name='palletstate'), nullable=False),
        sa.UniqueConstraint('row_id', 'position_index', name='uq_pallet_slot_row_position'),
    )
    op.create_index('ix_pallet_slot_row_id', 'pallet_slot', ['row_id'])

    op.create_table(
        'work_table',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
    )
    op.create_index('ix_work_table_name', 'work_table', ['name'], unique=True)

    op.create_table(
        'row_call',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('table_id', sa.Integer(), sa.ForeignKey('work_table.id'), nullable=False),
        sa.Column('row_id', sa.Integer(), sa.ForeignKey('hall_row.id'), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'DELIVERED', 'CANCELLED', name='rowcallstatus'), nullable=False),
        sa.Column('order_id', sa.BigInteger(), nullable=True),
        sa.Column('last_agilox_action', sa.String(), nullable=True),
        sa.Column('last_agilox_status', sa.String(), nullable=True),
    )
    op.create_index('ix_row_call_table_id', 'row_call', ['table_id'])
    op.create_index('ix_row_call_row_id', 'row_call', ['row_id'])
    op.create_index('ix_row_call_status', 'row_call', ['status'])
    op.create_index('ix_row_call_order_id', 'row_call', ['order_id'])


def downgrade():
    op.drop_table('row_call')
    op.drop_table('work_table')
    op.drop_table('pallet_slot')
    op.drop_table('hall_row')
    op.drop_table('setting')
