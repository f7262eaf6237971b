"""Mini-game kinds.

Each kind module is pure: it builds an initial state blob, applies one
side's move to it and reports a winning side once there is one. None of
them know about the board or whose turn it is.
"""

import random
import time

from flask import current_app

from . import quiz, reaction, rps

KINDS = {
    rps.KIND: rps,
    quiz.KIND: quiz,
    reaction.KIND: reaction,
}


def get_kind(kind: str):
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown mini-game {kind!r}") from None


def enabled_kinds():
    configured = current_app.config.get('MINI_GAMES') or list(KINDS)
    unknown = [k for k in configured if k not in KINDS]
    if unknown:
        raise ValueError(f"unknown mini-game(s) configured: {', '.join(unknown)}")
    return list(configured)


def choose_kind(rng=None) -> str:
    return (rng or random).choice(enabled_kinds())


def initial_state(kind: str, now=None, rng=None) -> dict:
    now = time.time() if now is None else now
    return get_kind(kind).new_state(now, rng or random, current_app.config)
