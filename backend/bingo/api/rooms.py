from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from bingo.errors import Unauthorized
from bingo.services import engine
from bingo.services.rooms import create_room, current_game, get_room_by_code, join_room, leave_room, roster
from bingo.services.teams import join_team, start_eligibility, toggle_ready

rooms = Blueprint('rooms', __name__)


def _actor():
    return current_user._get_current_object()


def _require_member(room):
    actor = _actor()
    if actor.current_room_id != room.id:
        raise Unauthorized('You are not in this room')
    return actor


def _room_payload(room):
    game = current_game(room)
    return {
        'room': room.to_dict(),
        'players': [p.to_dict() for p in roster(room)],
        'game': game.to_dict() if game else None,
        'eligibility': start_eligibility(room),
    }


@rooms.route('', methods=['POST'])
@login_required
def create():
    data = request.get_json(silent=True) or {}
    room = create_room(data.get('name'), _actor())
    return jsonify(_room_payload(room)), 201


@rooms.route('/join', methods=['POST'])
@login_required
def join():
    data = request.get_json(silent=True) or {}
    room, players = join_room(data.get('code'), _actor())
    return jsonify({'room': room.to_dict(), 'players': [p.to_dict() for p in players]})


@rooms.route('/<string:code>', methods=['GET'])
def state(code):
    return jsonify(_room_payload(get_room_by_code(code)))


@rooms.route('/<string:code>/leave', methods=['POST'])
@login_required
def leave(code):
    room = get_room_by_code(code)
    leave_room(_actor(), room)
    return jsonify({'ok': True})


@rooms.route('/<string:code>/team', methods=['POST'])
@login_required
def team(code):
    room = get_room_by_code(code)
    actor = _require_member(room)
    data = request.get_json(silent=True) or {}
    player = join_team(actor, data.get('team'))
    return jsonify(player.to_dict())


@rooms.route('/<string:code>/ready', methods=['POST'])
@login_required
def ready(code):
    room = get_room_by_code(code)
    player = toggle_ready(_require_member(room))
    return jsonify(player.to_dict())


@rooms.route('/<string:code>/start', methods=['POST'])
@login_required
def start(code):
    room = get_room_by_code(code)
    actor = _require_member(room)
    data = request.get_json(silent=True) or {}
    game = engine.start_game(room, actor=actor, force=bool(data.get('force')))
    return jsonify(game.to_dict())
