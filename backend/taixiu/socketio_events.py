from flask import request

from taixiu import game_server, socketio
from taixiu.broadcast import NAMESPACE


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    game_server.connect(_get_sid())


def handle_disconnect(*args):
    game_server.disconnect(_get_sid())


def handle_command(data):
    game_server.handle_command(_get_sid(), data)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('command', handle_command, namespace=NAMESPACE)
