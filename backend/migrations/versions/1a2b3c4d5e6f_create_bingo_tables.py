"""create player, room, room_participant, game and match tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('team', sa.String(length=16), nullable=True),
        sa.Column('is_ready', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('current_room_id', sa.Integer(), nullable=True),
        sa.Column('last_active', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_player_session_id', 'player', ['session_id'], unique=True)
    op.create_index('ix_player_team', 'player', ['team'])
    op.create_index('ix_player_current_room_id', 'player', ['current_room_id'])

    op.create_table(
        'room',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=8), nullable=False),
        sa.Column('host_player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
        sa.Column('max_players', sa.Integer(), nullable=False, server_default='6'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_room_code', 'room', ['code'], unique=True)
    op.create_index('ix_room_status', 'room', ['status'])

    # player <-> room reference each other; add this FK once both exist
    with op.batch_alter_table('player') as batch_op:
        batch_op.create_foreign_key('fk_player_current_room_id', 'room', ['current_room_id'], ['id'])

    op.create_table(
        'room_participant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id', ondelete='CASCADE'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id', ondelete='CASCADE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('room_id', 'player_id', name='uq_room_participant'),
    )
    op.create_index('ix_room_participant_room_id', 'room_participant', ['room_id'])
    op.create_index('ix_room_participant_player_id', 'room_participant', ['player_id'])

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.Integer(), sa.ForeignKey('room.id', ondelete='CASCADE'), nullable=False),
        sa.Column('board_state', sa.Text(), nullable=False),
        sa.Column('current_turn', sa.String(length=16), nullable=False, server_default='red'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='lobby'),
        sa.Column('winner_team', sa.String(length=16), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_game_room_id', 'game', ['room_id'])
    op.create_index('ix_game_status', 'game', ['status'])
    op.create_index(
        'uq_game_live_room', 'game', ['room_id'], unique=True,
        sqlite_where=sa.text("status != 'ended'"),
        postgresql_where=sa.text("status != 'ended'"),
    )

    op.create_table(
        'match',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id', ondelete='CASCADE'), nullable=False),
        sa.Column('square', sa.Integer(), nullable=False),
        sa.Column('red_player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('purple_player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('mini_game', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('game_state', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('winner_team', sa.String(length=16), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('square >= 0 AND square <= 24', name='ck_match_square_range'),
    )
    op.create_index('ix_match_game_id', 'match', ['game_id'])
    op.create_index(
        'uq_match_live_square', 'match', ['game_id', 'square'], unique=True,
        sqlite_where=sa.text("status != 'completed'"),
        postgresql_where=sa.text("status != 'completed'"),
    )


def downgrade():
    op.drop_index('uq_match_live_square', table_name='match')
    op.drop_index('ix_match_game_id', table_name='match')
    op.drop_table('match')
    op.drop_index('ix_game_status', table_name='game')
    op.drop_index('ix_game_room_id', table_name='game')
    op.drop_index('uq_game_live_room', table_name='game')
    op.drop_table('game')
    op.drop_index('ix_room_participant_player_id', table_name='room_participant')
    op.drop_index('ix_room_participant_room_id', table_name='room_participant')
    op.drop_table('room_participant')
    with op.batch_alter_table('player') as batch_op:
        batch_op.drop_constraint('fk_player_current_room_id', type_='foreignkey')
    op.drop_index('ix_room_status', table_name='room')
    op.drop_index('ix_room_code', table_name='room')
    op.drop_table('room')
    op.drop_index('ix_player_current_room_id', table_name='player')
    op.drop_index('ix_player_team', table_name='player')
    op.drop_index('ix_player_session_id', table_name='player')
    op.drop_table('player')
