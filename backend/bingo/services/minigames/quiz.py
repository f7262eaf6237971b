"""Timed arithmetic quiz.

One question, four shuffled options, one correct. Each side answers once.
The contest resolves when both sides have answered or the countdown runs
out: a lone correct side wins, otherwise a coin flip decides.
"""

from bingo.errors import Conflict, ValidationError
from bingo.services.board import SIDES

KIND = 'math_quiz'
OPERATIONS = ('+', '-', '*')
OPTION_COUNT = 4
DISTRACTOR_SPREAD = 10

has_countdown = True


def make_question(rng):
    op = rng.choice(OPERATIONS)
    if op == '+':
        a, b = rng.randint(1, 20), rng.randint(1, 20)
        answer = a + b
    elif op == '-':
        a = rng.randint(10, 30)
        b = rng.randint(1, a - 1)
        answer = a - b
    else:
        a, b = rng.randint(2, 12), rng.randint(2, 12)
        answer = a * b

    options = {answer}
    while len(options) < OPTION_COUNT:
        candidate = answer + rng.randint(-DISTRACTOR_SPREAD, DISTRACTOR_SPREAD)
        if candidate > 0:
            options.add(candidate)
    options = sorted(options)
    rng.shuffle(options)
    return {'a': a, 'b': b, 'op': op, 'text': f"{a} {op} {b}", 'answer': answer, 'options': options}


def new_state(now, rng, config):
    duration = int(config.get('QUIZ_DURATION_SEC', 10))
    return {
        'question': make_question(rng),
        'started_at': now,
        'deadline': now + duration,
        'answers': {},
        'resolution': None,
    }


def _decide(state, rng):
    correct = [s for s in SIDES if state['answers'].get(s, {}).get('correct')]
    if len(correct) == 1:
        winner, reason = correct[0], 'correct'
    else:
        winner, reason = rng.choice(SIDES), 'tiebreak'
    state['resolution'] = {'winner': winner, 'reason': reason}
    return winner


def apply_move(state, side, move, now, rng):
    if now >= state['deadline']:
        # Too late to count; the countdown already decided
        return _decide(state, rng)
    answer = (move or {}).get('answer')
    if isinstance(answer, bool) or not isinstance(answer, int) or answer not in state['question']['options']:
        raise ValidationError('answer must be one of the offered options')
    if side in state['answers']:
        raise Conflict('Answer already submitted')
    state['answers'][side] = {
        'answer': answer,
        'correct': answer == state['question']['answer'],
        'at': now,
    }
    if len(state['answers']) == len(SIDES):
        return _decide(state, rng)
    return None


def expire(state, now, rng):
    if now < state['deadline']:
        raise Conflict('Countdown is still running')
    return _decide(state, rng)


def public_view(state, now):
    question = dict(state['question'])
    resolved = state['resolution'] is not None
    if not resolved:
        question.pop('answer', None)
    return {
        'question': question,
        'started_at': state['started_at'],
        'deadline': state['deadline'],
        'remaining': max(0.0, state['deadline'] - now),
        'answered': sorted(state['answers']),
        'answers': state['answers'] if resolved else None,
        'resolution': state['resolution'],
    }
