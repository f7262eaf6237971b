from flask import current_app
from sqlalchemy.exc import IntegrityError

from bingo import db
from bingo.errors import ValidationError
from bingo.models import Player


def resolve_or_create_player(session_id: str, username: str) -> Player:
    """Return the Player for a session handle, creating it on first contact.

    At most one Player exists per session handle. A changed display name is
    written back; otherwise only ``last_active`` moves.
    """
    session_id = (session_id or '').strip()
    username = (username or '').strip()
    if not session_id:
        raise ValidationError('session_id is required')
    if not username:
        raise ValidationError('name is required')
    if len(username) > 64:
        raise ValidationError('name must be at most 64 characters')

    player = Player.query.filter_by(session_id=session_id).first()
    if player is None:
        player = Player(session_id=session_id, username=username)
        db.session.add(player)
        try:
            db.session.commit()
        except IntegrityError:
            # Another tab of the same browser inserted first
            db.session.rollback()
            player = Player.query.filter_by(session_id=session_id).first()
            if player is None:
                raise
        else:
            current_app.logger.info(f"[player-create] player={player.id} name={username!r}")
            return player

    if player.username != username:
        player.username = username
    player.touch()
    db.session.add(player)
    db.session.commit()
    return player
