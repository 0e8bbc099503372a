from flask import current_app, request
from flask_socketio import emit

from dojo import socketio
from dojo.services.rooms.commands import COMMANDS, parse_command
from dojo.services.rooms.errors import InvalidPayload


def _dispatcher():
    return current_app.extensions['dojo'].dispatcher


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    current_app.logger.info(f"[socket-disconnect] sid={_get_sid()} reason={reason}")
    _dispatcher().disconnect(_get_sid())


def _make_handler(event: str):
    def _handler(data=None):
        try:
            command = parse_command(event, data)
        except InvalidPayload as exc:
            current_app.logger.warning(f"[bad-payload] event={event} sid={_get_sid()} field={exc.field}")
            return {'success': False, 'error': exc.message}
        return _dispatcher().handle(command, _get_sid())

    _handler.__name__ = 'handle_' + event.replace(':', '_').replace('-', '_')
    return _handler


def handle_error(exc):
    # Fails only the offending event; other rooms and connections carry on
    current_app.logger.exception(f"[socket-error] event={request.event} sid={_get_sid()}: {exc}")


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the given namespace.

    Every command event returns its acknowledgement (or None) so clients
    that pass a callback receive ``{success, ...}``.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event in COMMANDS:
        socketio.on_event(event, _make_handler(event), namespace=namespace)
    socketio.on_error(namespace)(handle_error)
