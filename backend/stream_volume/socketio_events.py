from flask_socketio import join_room, leave_room, emit
from stream_volume import socketio, get_stream_session
from stream_volume.services.volume import ValidationError, normalize
from typing import Dict, Any

NAMESPACE = '/ws'
OVERLAY_ROOM = 'overlay'


def _user_room(username: str) -> str:
    return f"user:{username}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_overlay(data=None):
    join_room(OVERLAY_ROOM)
    emit('joined', {'room': OVERLAY_ROOM, 'stats': get_stream_session().stats()})


def handle_watch_user(data):
    try:
        username = normalize((data or {}).get('user') or '')
    except ValidationError as exc:
        emit('error', {'message': str(exc)})
        return
    room = _user_room(username)
    join_room(room)
    _, _, reading = get_stream_session().peek(username)
    emit('joined', {'room': room, 'username': username, **reading.to_dict()})


def handle_unwatch_user(data):
    try:
        username = normalize((data or {}).get('user') or '')
    except ValidationError as exc:
        emit('error', {'message': str(exc)})
        return
    room = _user_room(username)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


# ---- server push helpers (called from HTTP routes) ----

def emit_volume_update(payload: Dict[str, Any]) -> None:
    """Push a user's new reading to overlays and anyone watching that user."""
    socketio.emit('volume_update', payload, to=OVERLAY_ROOM, namespace=NAMESPACE)
    socketio.emit('volume_update', payload, to=_user_room(payload['username']), namespace=NAMESPACE)


def emit_session_reset(cleared: int) -> None:
    socketio.emit('session_reset', {'cleared': cleared}, namespace=NAMESPACE)


def emit_settings_update(settings: Dict[str, Any]) -> None:
    socketio.emit('settings_update', settings, namespace=NAMESPACE)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('join_overlay', handle_join_overlay, namespace=NAMESPACE)
    socketio.on_event('watch_user', handle_watch_user, namespace=NAMESPACE)
    socketio.on_event('unwatch_user', handle_unwatch_user, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
