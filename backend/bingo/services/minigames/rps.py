"""Rock paper scissors. Ties replay until one side wins."""

from bingo.errors import Conflict, ValidationError
from bingo.services.board import PURPLE, RED

KIND = 'rps'
CHOICES = ('rock', 'paper', 'scissors')
# choice -> the choice it beats
BEATS = {'rock': 'scissors', 'paper': 'rock', 'scissors': 'paper'}

has_countdown = False


def beats(choice: str, other: str) -> bool:
    return BEATS[choice] == other


def new_state(now, rng, config):
    return {'round': 1, 'choices': {}, 'history': []}


def apply_move(state, side, move, now, rng):
    choice = (move or {}).get('choice')
    if choice not in CHOICES:
        raise ValidationError(f"choice must be one of {', '.join(CHOICES)}")
    if side in state['choices']:
        raise Conflict('Choice already locked in for this round')
    state['choices'][side] = choice
    if len(state['choices']) < 2:
        return None

    red, purple = state['choices'][RED], state['choices'][PURPLE]
    if red == purple:
        state['history'].append({'round': state['round'], RED: red, PURPLE: purple, 'result': 'tie'})
        state['round'] += 1
        state['choices'] = {}
        return None
    winner = RED if beats(red, purple) else PURPLE
    state['history'].append({'round': state['round'], RED: red, PURPLE: purple, 'result': winner})
    return winner


def public_view(state, now):
    # Hide a locked-in choice until the opponent has committed too
    return {
        'round': state['round'],
        'locked': sorted(state['choices']),
        'history': state['history'],
    }
