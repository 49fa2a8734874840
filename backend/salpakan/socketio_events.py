from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from typing import Any, Dict, Optional

from salpakan import protocol, socketio
from salpakan.services.session import SessionCoordinator, SessionRegistry

EXTENSION_KEY = 'salpakan_sessions'


def room_name(game_code: str) -> str:
    return f"game:{game_code.strip().upper()}"


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _emit(event: str, payload: Dict[str, Any], to: str) -> None:
    socketio.emit(event, payload, to=to, namespace=protocol.NAMESPACE)


def get_sessions(app=None) -> SessionRegistry:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def _join(room: str) -> SessionCoordinator:
    sid = _get_sid()
    sessions = get_sessions()
    previous = sessions.session_for(sid)
    if previous is not None and previous.room != room:
        leave_room(previous.room)
    session = sessions.join(sid, room)
    join_room(room)
    side = session.members.get(sid)
    emit(protocol.JOINED, {'room': room, 'side': side.value if side else None})
    return session


def _current_session() -> Optional[SessionCoordinator]:
    session = get_sessions().session_for(_get_sid())
    if session is None:
        current_app.logger.warning(f"[no-session] sid={_get_sid()} event ignored")
    return session


def handle_connect(auth=None):
    code = request.args.get('room') or current_app.config.get('DEFAULT_ROOM', 'lobby')
    _join(room_name(code))


def handle_disconnect(*args):
    session = get_sessions().leave(_get_sid())
    if session is not None:
        current_app.logger.info(f"[disconnect] sid={_get_sid()} room={session.room}")


def handle_join_game(data):
    game_code = data.get('game_code') if isinstance(data, dict) else None
    if not isinstance(game_code, str) or not game_code.strip():
        emit(protocol.ERROR, {'message': 'game_code is required'})
        return
    _join(room_name(game_code))


def handle_ready(data):
    session = _current_session()
    if session is None:
        return
    ready = data.get('ready', True) if isinstance(data, dict) else True
    if not isinstance(ready, bool):
        current_app.logger.warning(f"[ready-drop] sid={_get_sid()} ready must be a boolean, got {ready!r}")
        return
    session.on_ready(_get_sid(), ready)


def handle_move(data):
    session = _current_session()
    if session is None:
        return
    session.relay.on_move(_get_sid(), data)


def handle_ping(data=None):
    emit(protocol.PONG, data or {})


def register_socketio_handlers(flask_app) -> None:
    """Create the app's session registry and bind event handlers on the game namespace."""
    flask_app.extensions[EXTENSION_KEY] = SessionRegistry(
        _emit,
        party_size=int(flask_app.config.get('PARTY_SIZE', 2)),
        delay_ms=int(flask_app.config.get('COUNTDOWN_DELAY_MS', 5000)),
    )
    ns = protocol.NAMESPACE
    socketio.on_event('connect', handle_connect, namespace=ns)
    socketio.on_event('disconnect', handle_disconnect, namespace=ns)
    socketio.on_event(protocol.JOIN_GAME, handle_join_game, namespace=ns)
    socketio.on_event(protocol.READY, handle_ready, namespace=ns)
    socketio.on_event(protocol.MOVE, handle_move, namespace=ns)
    socketio.on_event(protocol.PING, handle_ping, namespace=ns)
