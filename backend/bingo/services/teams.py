from typing import Dict, Iterable

from flask import current_app

from bingo import db
from bingo.errors import Conflict, ValidationError
from bingo.models import Player, Room
from bingo.services.board import SIDES
from bingo.services.notify import publish_room
from bingo.services.rooms import roster
from bingo.services.store import bump_version, max_attempts, reload


def team_size() -> int:
    return int(current_app.config.get('TEAM_SIZE', 3))


def _side_members(players: Iterable[Player], side: str):
    return [p for p in players if p.team == side]


def _claim_team_slot(player: Player, side: str) -> None:
    # The room version orders concurrent switches onto the same side
    room = db.session.get(Room, player.current_room_id)
    for _ in range(max_attempts()):
        reload(room)
        taken = Player.query.filter_by(current_room_id=room.id, team=side).count()
        if taken >= team_size():
            raise Conflict(f'Team {side} is full')
        if bump_version(Room, room.id, room.version):
            return
        db.session.rollback()
        current_app.logger.info(f"[team-retry] room={room.id} teams moved; re-reading")
    raise Conflict('Room is busy, retry')


def join_team(player: Player, side: str) -> Player:
    """Put the player on a side. Readiness is always forfeited."""
    if side not in SIDES:
        raise ValidationError(f"team must be one of {', '.join(SIDES)}")
    if player.current_room_id is None:
        raise Conflict('Join a room before picking a team')

    if current_app.config.get('ENFORCE_TEAM_CAP', True) and player.team != side:
        _claim_team_slot(player, side)

    player.team = side
    player.is_ready = False
    player.touch()
    db.session.add(player)
    db.session.commit()
    current_app.logger.info(f"[team-join] room={player.current_room_id} player={player.id} team={side}")
    publish_room(player.current_room_id, 'team_changed')
    return player


def toggle_ready(player: Player) -> Player:
    if player.current_room_id is None:
        raise Conflict('Join a room before readying up')
    player.is_ready = not player.is_ready
    player.touch()
    db.session.add(player)
    db.session.commit()
    publish_room(player.current_room_id, 'ready_changed')
    return player


def start_eligibility(room) -> Dict:
    """Evaluate both start gates for a room.

    strict: exactly TEAM_SIZE ready players on each side.
    force:  at least one player on each side, readiness ignored (host only).
    """
    players = roster(room)
    size = team_size()
    counts = {}
    for side in SIDES:
        members = _side_members(players, side)
        counts[side] = {'players': len(members), 'ready': sum(1 for p in members if p.is_ready)}
    return {
        'strict': all(counts[s]['ready'] == size for s in SIDES),
        'force': all(counts[s]['players'] >= 1 for s in SIDES),
        'team_size': size,
        'counts': counts,
    }
