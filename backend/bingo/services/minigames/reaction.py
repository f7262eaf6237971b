"""Reaction race: wait out the countdown, then a random delay, then tap.

If nobody taps within the window after GO the race is settled by a coin
flip at ``deadline``, the same way an unanswered quiz is.
"""

from bingo.errors import Conflict, ValidationError
from bingo.services.board import SIDES

KIND = 'quick_tap'

has_countdown = True


def new_state(now, rng, config):
    countdown = int(config.get('REACTION_COUNTDOWN_SEC', 3))
    low = int(config.get('REACTION_MIN_DELAY_MS', 500))
    high = int(config.get('REACTION_MAX_DELAY_MS', 2000))
    window = int(config.get('REACTION_WINDOW_SEC', 5))
    delay_ms = rng.uniform(low, max(low, high))
    go_at = now + countdown + delay_ms / 1000.0
    return {
        'started_at': now,
        'countdown_ends_at': now + countdown,
        'go_at': go_at,
        'deadline': go_at + window,
        'early_taps': {side: 0 for side in SIDES},
        'winning_tap': None,
        'resolution': None,
    }


def _timeout(state, rng):
    winner = rng.choice(SIDES)
    state['resolution'] = {'winner': winner, 'reason': 'timeout'}
    return winner


def apply_move(state, side, move, now, rng):
    if (move or {}).get('action', 'tap') != 'tap':
        raise ValidationError("action must be 'tap'")
    if now < state['go_at']:
        # Jumping the gun is ignored, not penalised
        state['early_taps'][side] += 1
        return None
    if now >= state['deadline']:
        return _timeout(state, rng)
    state['winning_tap'] = {'side': side, 'reaction_ms': int(round((now - state['go_at']) * 1000))}
    state['resolution'] = {'winner': side, 'reason': 'tap'}
    return side


def expire(state, now, rng):
    if now < state['deadline']:
        raise Conflict('Reaction window is still open')
    return _timeout(state, rng)


def public_view(state, now):
    return {
        'started_at': state['started_at'],
        'countdown_ends_at': state['countdown_ends_at'],
        'go_at': state['go_at'],
        'deadline': state['deadline'],
        'go': now >= state['go_at'],
        'early_taps': state['early_taps'],
        'winning_tap': state['winning_tap'],
        'resolution': state['resolution'],
    }
