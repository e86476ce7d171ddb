"""create record table

Revision ID: 3b7c1d9e2f4a
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7c1d9e2f4a'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'record' in set(insp.get_table_names()):
        return

    op.create_table(
        'record',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('had_false_start', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_ticket', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('finger_mode', sa.Integer(), nullable=False),
        sa.Column('mode_kind', sa.String(length=32), nullable=False),
    )
    op.create_index('ix_record_date', 'record', ['date'])
    op.create_index('ix_record_board', 'record', ['finger_mode', 'mode_kind'])


def downgrade():
    op.drop_index('ix_record_board', table_name='record')
    op.drop_index('ix_record_date', table_name='record')
    op.drop_table('record')
