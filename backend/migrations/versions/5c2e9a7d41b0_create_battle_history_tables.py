"""create battle_result and battle_standing

Revision ID: 5c2e9a7d41b0
Revises: 
Create Date: 2026-10-19 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a7d41b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    # Databases set up with `flask db-init` already have both tables
    if 'battle_result' not in existing_tables:
        op.create_table(
            'battle_result',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('room_code', sa.String(length=8), nullable=False),
            sa.Column('problem_slug', sa.String(length=255), nullable=True),
            sa.Column('problem_title', sa.String(length=255), nullable=True),
            sa.Column('difficulty', sa.String(length=16), nullable=True),
            sa.Column('duration', sa.Integer(), nullable=False),
            sa.Column('is_hardcore', sa.Boolean(), nullable=False),
            sa.Column('entry_fee', sa.Integer(), nullable=False),
            sa.Column('winner_id', sa.String(length=64), nullable=False),
            sa.Column('started_at_ms', sa.BigInteger(), nullable=True),
            sa.Column('finished_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_battle_result_room_code', 'battle_result', ['room_code'], unique=False)
        op.create_index('ix_battle_result_winner_id', 'battle_result', ['winner_id'], unique=False)

    if 'battle_standing' not in existing_tables:
        op.create_table(
            'battle_standing',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('battle_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('rank', sa.Integer(), nullable=False),
            sa.Column('solved', sa.Boolean(), nullable=False),
            sa.Column('solve_time_ms', sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(['battle_id'], ['battle_result.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_battle_standing_user_id', 'battle_standing', ['user_id'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'battle_standing' in existing_tables:
        op.drop_index('ix_battle_standing_user_id', table_name='battle_standing')
        op.drop_table('battle_standing')
    if 'battle_result' in existing_tables:
        op.drop_index('ix_battle_result_winner_id', table_name='battle_result')
        op.drop_index('ix_battle_result_room_code', table_name='battle_result')
        op.drop_table('battle_result')
