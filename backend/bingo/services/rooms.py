from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bingo import db
from bingo.errors import Conflict, NotCreated, NotFound, RoomFull, ValidationError
from bingo.models import Game, Player, Room, RoomParticipant, generate_room_code
from bingo.services.notify import publish_room
from bingo.services.store import bump_version, max_attempts, reload

CODE_INSERT_ATTEMPTS = 5


def normalize_code(code) -> str:
    return (code or '').strip().upper()


def get_room_by_code(code) -> Room:
    room = Room.query.filter_by(code=normalize_code(code)).first()
    if room is None:
        raise NotFound('Room not found')
    return room


def roster(room: Room) -> List[Player]:
    """Players currently in the room, in join order."""
    return (
        Player.query
        .join(RoomParticipant, RoomParticipant.player_id == Player.id)
        .filter(RoomParticipant.room_id == room.id)
        .order_by(RoomParticipant.joined_at, RoomParticipant.id)
        .all()
    )


def participant_count(room: Room) -> int:
    return RoomParticipant.query.filter_by(room_id=room.id).count()


def is_participant(room: Room, player: Player) -> bool:
    return RoomParticipant.query.filter_by(room_id=room.id, player_id=player.id).first() is not None


def current_game(room: Room) -> Optional[Game]:
    """The most recently created game of the room, finished or not."""
    return room.games.order_by(Game.created_at.desc(), Game.id.desc()).first()


def _sync_capacity_status(room: Room) -> None:
    # Only lobby states track occupancy; running/finished rooms keep their status
    if room.status not in ('waiting', 'full'):
        return
    room.status = 'full' if participant_count(room) >= room.max_players else 'waiting'
    db.session.add(room)


def _leave_previous_room(player: Player, keep_room_id: Optional[int] = None) -> None:
    if player.current_room_id and player.current_room_id != keep_room_id:
        previous = db.session.get(Room, player.current_room_id)
        if previous is not None:
            leave_room(player, previous)


def create_room(name: str, host: Player) -> Room:
    name = (name or '').strip()
    if not name:
        raise ValidationError('Room name is required')
    _leave_previous_room(host)

    length = int(current_app.config.get('ROOM_CODE_LENGTH', 4))
    capacity = int(current_app.config.get('ROOM_CAPACITY', 6))
    for _ in range(CODE_INSERT_ATTEMPTS):
        room = Room(name=name[:64], code=generate_room_code(length), host_player_id=host.id,
                    max_players=capacity, status='waiting')
        try:
            db.session.add(room)
            db.session.flush()
            db.session.add(RoomParticipant(room_id=room.id, player_id=host.id))
            host.current_room_id = room.id
            host.team = None
            host.is_ready = False
            host.touch()
            db.session.add(host)
            db.session.commit()
        except IntegrityError:
            # Code taken between the uniqueness check and the insert
            db.session.rollback()
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("[room-create] insert failed")
            raise NotCreated('Room could not be created') from exc
        current_app.logger.info(f"[room-create] room={room.id} code={room.code} host={host.id}")
        publish_room(room.id, 'room_created')
        return room
    raise NotCreated('Could not allocate a unique room code')


def _claim_seat(room: Room, player: Player) -> None:
    """Insert the participant row, guarded by the room version.

    Two joins that both counted five seats taken cannot both land: the
    second version bump fails, and its re-count finds the room full.
    """
    for _ in range(max_attempts()):
        reload(room)
        if participant_count(room) >= room.max_players:
            raise RoomFull(f'Room {room.code} is full')
        if not bump_version(Room, room.id, room.version):
            db.session.rollback()
            current_app.logger.info(f"[room-retry] room={room.id} membership moved; re-reading")
            continue
        db.session.add(RoomParticipant(room_id=room.id, player_id=player.id))
        try:
            db.session.flush()
        except IntegrityError:
            # Duplicate delivery of the same join; the row already exists
            db.session.rollback()
        return
    raise Conflict('Room is busy, retry')


def join_room(code, player: Player) -> Tuple[Room, List[Player]]:
    room = get_room_by_code(code)
    if not is_participant(room, player):
        if participant_count(room) >= room.max_players:
            raise RoomFull(f'Room {room.code} is full')
        _leave_previous_room(player, keep_room_id=room.id)
        _claim_seat(room, player)
        current_app.logger.info(f"[room-join] room={room.id} player={player.id}")
    player.current_room_id = room.id
    player.touch()
    db.session.add(player)
    _sync_capacity_status(room)
    db.session.commit()
    publish_room(room.id, 'player_joined')
    return room, roster(room)


def leave_room(player: Player, room: Room) -> None:
    """Remove the player from the room. Leaving twice is harmless."""
    removed = RoomParticipant.query.filter_by(room_id=room.id, player_id=player.id).delete(synchronize_session=False)
    if player.current_room_id in (room.id, None):
        player.current_room_id = None
        player.team = None
        player.is_ready = False
        player.touch()
        db.session.add(player)
    if removed and room.host_player_id == player.id:
        successor = (
            RoomParticipant.query
            .filter(RoomParticipant.room_id == room.id, RoomParticipant.player_id != player.id)
            .order_by(RoomParticipant.joined_at, RoomParticipant.id)
            .first()
        )
        room.host_player_id = successor.player_id if successor else None
        current_app.logger.info(f"[room-host] room={room.id} host -> {room.host_player_id}")
    _sync_capacity_status(room)
    db.session.commit()
    if removed:
        current_app.logger.info(f"[room-leave] room={room.id} player={player.id}")
        publish_room(room.id, 'player_left')
