from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from bingo.services import engine
from bingo.services.minigames import arbiter

games = Blueprint('games', __name__)


def _actor():
    return current_user._get_current_object()


def _match_payload(match):
    return match.to_dict(state=arbiter.public_state(match))


@games.route('/games/<int:game_id>', methods=['GET'])
def get_game_state(game_id):
    return jsonify(engine.get_game(game_id).to_dict())


@games.route('/games/<int:game_id>/challenge', methods=['POST'])
@login_required
def challenge(game_id):
    game = engine.get_game(game_id)
    data = request.get_json(silent=True) or {}
    match = engine.challenge_square(game, data.get('square'), actor=_actor())
    return jsonify(_match_payload(match)), 201


@games.route('/matches/<int:match_id>', methods=['GET'])
def get_match_state(match_id):
    return jsonify(_match_payload(engine.get_match(match_id)))


@games.route('/matches/<int:match_id>/move', methods=['POST'])
@login_required
def move(match_id):
    match = engine.get_match(match_id)
    match = arbiter.submit_move(match, _actor(), request.get_json(silent=True) or {})
    return jsonify(_match_payload(match))


@games.route('/matches/<int:match_id>/expire', methods=['POST'])
def expire(match_id):
    # Client countdowns land here; the deadline check is server-side
    match = arbiter.expire_match(engine.get_match(match_id))
    return jsonify(_match_payload(match))


@games.route('/matches/<int:match_id>/resolve', methods=['POST'])
@login_required
def resolve(match_id):
    match = engine.get_match(match_id)
    data = request.get_json(silent=True) or {}
    match = arbiter.resolve_manually(match, _actor(), data.get('winner'))
    return jsonify(_match_payload(match))
