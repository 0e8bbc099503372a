from dataclasses import dataclass

from flask_socketio import join_room, leave_room

from .dispatcher import RoomDispatcher
from .presence import PresenceRegistry
from .scheduler import CountdownScheduler
from .store import RoomStore


class SocketIOTransport:
    """Delivers dispatcher output through Flask-SocketIO."""

    def __init__(self, socketio, namespace: str):
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, event, data, to=None, skip_sid=None):
        # socketio.emit works from background tasks as well as handlers
        self.socketio.emit(event, data, to=to, skip_sid=skip_sid, namespace=self.namespace)

    def join(self, sid, channel):
        join_room(channel, sid=sid, namespace=self.namespace)

    def leave(self, sid, channel):
        leave_room(channel, sid=sid, namespace=self.namespace)


@dataclass
class DojoContext:
    store: RoomStore
    presence: PresenceRegistry
    scheduler: CountdownScheduler
    dispatcher: RoomDispatcher


def build_context(app, socketio, transport=None) -> DojoContext:
    cfg = app.config
    store = RoomStore(code_length=int(cfg.get('ROOM_CODE_LENGTH', 6)))
    presence = PresenceRegistry()
    scheduler = CountdownScheduler(
        socketio,
        app.logger,
        delay_sec=int(cfg.get('START_COUNTDOWN_SEC', 3)),
        run_inline=bool(cfg.get('TESTING')),
    )
    on_finished = None
    if cfg.get('RECORD_BATTLES', True):
        from .history import BattleRecorder
        on_finished = BattleRecorder(app)
    dispatcher = RoomDispatcher(
        store,
        presence,
        scheduler,
        transport or SocketIOTransport(socketio, cfg.get('SOCKETIO_NAMESPACE', '/ws')),
        app.logger,
        max_participants=int(cfg.get('MAX_PARTICIPANTS', 4)),
        default_duration=int(cfg.get('DEFAULT_DURATION_MIN', 30)),
        default_difficulty=cfg.get('DEFAULT_DIFFICULTY', 'Medium'),
        on_finished=on_finished,
    )
    return DojoContext(store=store, presence=presence, scheduler=scheduler, dispatcher=dispatcher)
