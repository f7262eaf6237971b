"""Change-notification fan-out.

Payloads only name what changed (scope, id, event); receivers re-read the
state over HTTP. That keeps duplicate or reordered deliveries harmless.
"""

import itertools
import threading
from collections import defaultdict
from typing import Callable, Dict, Optional, Tuple

from flask import current_app
from bingo import socketio

SCOPES = ('room', 'game', 'match')
NAMESPACE = '/ws'

Listener = Callable[[dict], None]


def channel_name(scope: str, key) -> str:
    return f"{scope}:{key}"


class SubscriptionRegistry:
    """In-process listeners keyed by (scope, id), released by token."""

    def __init__(self):
        self._listeners: Dict[Tuple[str, str], Dict[int, Listener]] = defaultdict(dict)
        self._tokens: Dict[int, Tuple[str, str]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, scope: str, key, callback: Listener) -> int:
        if scope not in SCOPES:
            raise ValueError(f"unknown scope {scope!r}")
        slot = (scope, str(key))
        with self._lock:
            token = next(self._counter)
            self._listeners[slot][token] = callback
            self._tokens[token] = slot
        return token

    def unsubscribe(self, token: int) -> bool:
        with self._lock:
            slot = self._tokens.pop(token, None)
            if slot is None:
                return False
            self._listeners[slot].pop(token, None)
            if not self._listeners[slot]:
                del self._listeners[slot]
        return True

    def listener_count(self, scope: Optional[str] = None, key=None) -> int:
        with self._lock:
            if scope is None:
                return len(self._tokens)
            return len(self._listeners.get((scope, str(key)), {}))

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
            self._tokens.clear()

    def publish(self, scope: str, key, event: str) -> dict:
        payload = {'scope': scope, 'id': key, 'event': event}
        with self._lock:
            callbacks = list(self._listeners.get((scope, str(key)), {}).values())
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                # A broken listener must not undo a committed mutation
                current_app.logger.exception(f"[notify] listener failed for {channel_name(scope, key)}")
        socketio.emit('state_update', payload, to=channel_name(scope, key), namespace=NAMESPACE)
        return payload


registry = SubscriptionRegistry()


def subscribe(scope: str, key, callback: Listener) -> int:
    return registry.subscribe(scope, key, callback)


def unsubscribe(token: int) -> bool:
    return registry.unsubscribe(token)


def publish_room(room_id: int, event: str) -> None:
    registry.publish('room', room_id, event)


def publish_game(game, event: str) -> None:
    registry.publish('game', game.id, event)
    registry.publish('room', game.room_id, event)


def publish_match(match, event: str) -> None:
    registry.publish('match', match.id, event)
    registry.publish('game', match.game_id, event)
    registry.publish('room', match.game.room_id, event)
