from bingo import db
from bingo.services.board import RED, PURPLE, new_board
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import string
import random


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    team = db.Column(db.String(16), nullable=True, index=True)  # None, red, purple
    is_ready = db.Column(db.Boolean, default=False, nullable=False)
    current_room_id = db.Column(db.Integer, db.ForeignKey('room.id', name='fk_player_current_room_id', use_alter=True), nullable=True, index=True)
    last_active = db.Column(db.DateTime(timezone=True), default=_utcnow)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def touch(self):
        self.last_active = _utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'team': self.team,
            'is_ready': bool(self.is_ready),
            'current_room_id': self.current_room_id,
            'last_active': _iso(self.last_active),
        }


def generate_room_code(length=4):
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Room.query.filter_by(code=code).first():
            return code


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    code = db.Column(db.String(8), unique=True, nullable=False, index=True)
    host_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    max_players = db.Column(db.Integer, default=6, nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False, index=True)  # waiting, full, in_progress, finished
    # Bumped with every membership or team change so concurrent joins serialize
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    participants = db.relationship('RoomParticipant', back_populates='room', lazy='dynamic', cascade='all, delete-orphan')
    games = db.relationship('Game', back_populates='room', lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'host_player_id': self.host_player_id,
            'max_players': self.max_players,
            'status': self.status,
            'created_at': _iso(self.created_at),
        }


class RoomParticipant(db.Model):
    __tablename__ = 'room_participant'
    __table_args__ = (
        db.UniqueConstraint('room_id', 'player_id', name='uq_room_participant'),
    )
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    room = db.relationship('Room', back_populates='participants')
    player = db.relationship('Player')


class Game(db.Model):
    __tablename__ = 'game'
    # One live (non-ended) game per room; racing starts collide here
    __table_args__ = (
        db.Index(
            'uq_game_live_room', 'room_id', unique=True,
            sqlite_where=db.text("status != 'ended'"),
            postgresql_where=db.text("status != 'ended'"),
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False, index=True)
    board_state = db.Column(db.Text, nullable=False, default=lambda: json.dumps(new_board()))
    current_turn = db.Column(db.String(16), nullable=False, default=RED)
    status = db.Column(db.String(16), nullable=False, default='lobby', index=True)  # lobby, in_progress, ended
    winner_team = db.Column(db.String(16), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    room = db.relationship('Room', back_populates='games')
    matches = db.relationship('Match', back_populates='game', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def board(self):
        return json.loads(self.board_state) if self.board_state else new_board()

    @property
    def is_draw(self):
        return self.status == 'ended' and self.winner_team is None

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'board_state': self.board,
            'current_turn': self.current_turn,
            'status': self.status,
            'winner_team': self.winner_team,
            'is_draw': self.is_draw,
            'active_matches': [
                m.to_summary() for m in self.matches.filter(Match.status != 'completed').order_by(Match.id)
            ],
            'created_at': _iso(self.created_at),
            'ended_at': _iso(self.ended_at),
        }


class Match(db.Model):
    __tablename__ = 'match'
    # At most one unresolved challenge per square
    __table_args__ = (
        db.CheckConstraint('square >= 0 AND square <= 24', name='ck_match_square_range'),
        db.Index(
            'uq_match_live_square', 'game_id', 'square', unique=True,
            sqlite_where=db.text("status != 'completed'"),
            postgresql_where=db.text("status != 'completed'"),
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    square = db.Column(db.Integer, nullable=False)
    red_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    purple_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    mini_game = db.Column(db.String(16), nullable=False)  # rps, math_quiz, quick_tap
    status = db.Column(db.String(16), nullable=False, default='pending')  # pending, active, completed
    game_state = db.Column(db.Text, nullable=False, default='{}')
    winner_team = db.Column(db.String(16), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    game = db.relationship('Game', back_populates='matches')
    red_player = db.relationship('Player', foreign_keys=[red_player_id])
    purple_player = db.relationship('Player', foreign_keys=[purple_player_id])

    @property
    def state(self):
        return json.loads(self.game_state) if self.game_state else {}

    def side_of(self, player_id):
        if player_id == self.red_player_id:
            return RED
        if player_id == self.purple_player_id:
            return PURPLE
        return None

    def to_summary(self):
        return {
            'id': self.id,
            'square': self.square,
            'mini_game': self.mini_game,
            'status': self.status,
        }

    def to_dict(self, state=None):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'square': self.square,
            'red_player': self.red_player.to_dict() if self.red_player else None,
            'purple_player': self.purple_player.to_dict() if self.purple_player else None,
            'mini_game': self.mini_game,
            'status': self.status,
            'winner_team': self.winner_team,
            'game_state': state if state is not None else self.state,
            'created_at': _iso(self.created_at),
        }


