"""Runs mini-game moves against a match and reports the winner.

The state blob is rewritten with a version check so two representatives
submitting at the same instant never overwrite each other. A winner, once
produced, is handed to ``engine.complete_match``; that is the only way a
mini-game touches anything outside its own match.
"""

import json
import random
import time
from typing import Optional

from flask import current_app

from bingo.errors import Conflict, Unauthorized, ValidationError
from bingo.models import Match, Player
from bingo.services import engine
from bingo.services.board import SIDES
from bingo.services.minigames import get_kind
from bingo.services.notify import publish_match
from bingo.services.store import compare_and_set, max_attempts, reload


def public_state(match: Match, now=None) -> dict:
    now = time.time() if now is None else now
    return get_kind(match.mini_game).public_view(match.state, now)


def side_for(match: Match, actor: Player) -> str:
    side = match.side_of(actor.id)
    if side is None:
        raise Unauthorized('Only the two representatives can play this match')
    return side


def _advance(match: Match, step, event: str) -> Match:
    winner = None
    for _ in range(max_attempts()):
        reload(match)
        if match.status == 'completed':
            return match
        state = match.state
        winner = step(state)
        if compare_and_set(Match, match.id, match.version, game_state=json.dumps(state)):
            reload(match)
            break
        current_app.logger.info(f"[match-retry] match={match.id} state moved; re-reading")
    else:
        raise Conflict('Match is busy, retry')

    if winner is not None:
        return engine.complete_match(match, winner)
    publish_match(match, event)
    return match


def submit_move(match: Match, actor: Player, move: Optional[dict], now=None, rng=None) -> Match:
    """Apply one representative's move. Moves on a finished match are ignored."""
    kind = get_kind(match.mini_game)
    side = side_for(match, actor)
    if move is not None and not isinstance(move, dict):
        raise ValidationError('move must be an object')
    rng = rng or random

    def step(state):
        at = time.time() if now is None else now
        return kind.apply_move(state, side, move, at, rng)

    result = _advance(match, step, 'match_move')
    current_app.logger.info(f"[match-move] match={match.id} side={side} status={result.status}")
    return result


def expire_match(match: Match, now=None, rng=None) -> Match:
    """Resolve a countdown mini-game whose timer has run out."""
    kind = get_kind(match.mini_game)
    if not getattr(kind, 'has_countdown', False):
        raise Conflict(f'{match.mini_game} has no countdown')
    rng = rng or random

    def step(state):
        at = time.time() if now is None else now
        return kind.expire(state, at, rng)

    return _advance(match, step, 'match_expired')


def resolve_manually(match: Match, actor: Player, winner: str) -> Match:
    """Report an outcome decided outside the server (client-side contest)."""
    side_for(match, actor)
    if winner not in SIDES:
        raise ValidationError(f"winner must be one of {', '.join(SIDES)}")
    return engine.complete_match(match, winner)
