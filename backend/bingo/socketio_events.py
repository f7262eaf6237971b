from flask import request
from flask_socketio import join_room, leave_room, emit
from typing import Dict, Optional, Set
import threading

from bingo import socketio
from bingo.services.notify import NAMESPACE, SCOPES, channel_name


# sid -> channels ("room:3", "game:7", ...) that socket is subscribed to
_sid_channels: Dict[str, Set[str]] = {}
_lock = threading.Lock()


def _get_sid() -> str:
    return request.sid  # type: ignore


def _channel_from(data) -> Optional[str]:
    scope = (data or {}).get('scope')
    key = (data or {}).get('id')
    if scope not in SCOPES or key in (None, ''):
        emit('error', {'message': f"scope must be one of {', '.join(SCOPES)} and id is required"})
        return None
    return channel_name(scope, key)


def handle_connect():
    with _lock:
        _sid_channels[_get_sid()] = set()
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    # Release every scope the socket held
    sid = _get_sid()
    with _lock:
        channels = _sid_channels.pop(sid, set())
    for channel in channels:
        leave_room(channel, sid=sid)


def handle_subscribe(data):
    channel = _channel_from(data)
    if channel is None:
        return
    join_room(channel)
    with _lock:
        _sid_channels.setdefault(_get_sid(), set()).add(channel)
    emit('subscribed', {'channel': channel})


def handle_unsubscribe(data):
    channel = _channel_from(data)
    if channel is None:
        return
    leave_room(channel)
    with _lock:
        _sid_channels.get(_get_sid(), set()).discard(channel)
    emit('unsubscribed', {'channel': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        _register_on(namespace)


def _register_on(namespace: str) -> None:
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
