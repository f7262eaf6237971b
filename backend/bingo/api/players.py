from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from bingo.services.players import resolve_or_create_player

players = Blueprint('players', __name__)


@players.route('', methods=['POST'])
def resolve_player():
    """Create-or-fetch the player behind a browser session handle."""
    data = request.get_json(silent=True) or {}
    player = resolve_or_create_player(data.get('session_id'), data.get('name'))
    return jsonify(player.to_dict()), 200


@players.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict())
