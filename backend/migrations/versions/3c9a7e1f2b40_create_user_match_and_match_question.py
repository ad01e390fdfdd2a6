"""create user, match and match_question tables

Revision ID: 3c9a7e1f2b40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9a7e1f2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'match',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('player_one_id', sa.String(length=64), nullable=False),
        sa.Column('player_one_name', sa.String(length=64), nullable=False),
        sa.Column('player_two_id', sa.String(length=64), nullable=True),
        sa.Column('player_two_name', sa.String(length=64), nullable=True),
        sa.Column('player_one_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('player_two_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
        sa.Column('current_question_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('question_deadline', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_match_player_one_id', 'match', ['player_one_id'])
    op.create_index('ix_match_player_two_id', 'match', ['player_two_id'])
    op.create_index('ix_match_status', 'match', ['status'])

    op.create_table(
        'match_question',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('match_id', sa.String(length=64), sa.ForeignKey('match.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.Text(), nullable=False),
        sa.Column('answered_by', sa.String(length=64), nullable=True),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('match_id', 'position', name='uq_match_question_position'),
    )
    op.create_index('ix_match_question_match_id', 'match_question', ['match_id'])


def downgrade():
    op.drop_index('ix_match_question_match_id', table_name='match_question')
    op.drop_table('match_question')
    op.drop_index('ix_match_status', table_name='match')
    op.drop_index('ix_match_player_two_id', table_name='match')
    op.drop_index('ix_match_player_one_id', table_name='match')
    op.drop_table('match')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
