import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from . import voting
from .commands import (
    COMMANDS, CreateRoom, JoinRoom, LeaveRoom, LockProblem, PresenceOffline,
    PresenceOnline, ReportSolved, SendChat, SendInvite, SetReady, StartRoom,
    SuggestProblem, VoteProblem,
)
from .entities import (
    ChatMessage, Participant, ProblemSuggestion, Room, RoomSettings, RoomStatus,
    normalize_difficulty,
)
from .errors import Conflict, Forbidden, NotFound, RoomError
from .presence import PresenceRegistry
from .ranking import finish_room
from .scheduler import CountdownScheduler
from .store import RoomStore

Ack = Optional[Dict[str, Any]]


def channel_for(code: str) -> str:
    return f"room:{code}"


class RoomDispatcher:
    """Applies inbound commands to rooms and fans the results out.

    This is the only component that talks to the transport. ``transport``
    must provide ``emit(event, data, to=None, skip_sid=None)``,
    ``join(sid, channel)`` and ``leave(sid, channel)``.
    """

    def __init__(self, store: RoomStore, presence: PresenceRegistry,
                 scheduler: CountdownScheduler, transport, logger,
                 max_participants: int = 4, default_duration: int = 30,
                 default_difficulty: str = 'Medium',
                 on_finished: Optional[Callable[[Room, List[Dict[str, Any]]], None]] = None):
        self.store = store
        self.presence = presence
        self.scheduler = scheduler
        self.transport = transport
        self.logger = logger
        self.max_participants = max_participants
        self.default_duration = default_duration
        self.default_difficulty = default_difficulty
        self.on_finished = on_finished
        self._handlers = {
            PresenceOnline: self.presence_online,
            PresenceOffline: self.presence_offline,
            CreateRoom: self.create,
            JoinRoom: self.join,
            SetReady: self.ready,
            StartRoom: self.start,
            ReportSolved: self.solved,
            SendChat: self.chat,
            SuggestProblem: self.suggest,
            VoteProblem: self.vote,
            LockProblem: self.lock,
            LeaveRoom: self.leave,
            SendInvite: self.invite,
        }
        missing = set(COMMANDS.values()) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for {sorted(c.EVENT for c in missing)}")

    def handle(self, command, sid: str) -> Ack:
        handler = self._handlers[type(command)]
        try:
            return handler(command, sid)
        except RoomError as exc:
            self.logger.info(f"[rejected] event={command.EVENT} sid={sid} error={exc.message!r}")
            return {'success': False, 'error': exc.message}

    # ---- helpers ----

    @contextmanager
    def _locked_room(self, code: str):
        """Yield the room under its lock, or None if it is gone."""
        room = self.store.get_room(code)
        if room is None:
            yield None
            return
        with room.lock:
            yield room if self.store.get_room(code) is room else None

    def _broadcast(self, room: Room, event: str, data, skip_sid: Optional[str] = None) -> None:
        self.transport.emit(event, data, to=channel_for(room.code), skip_sid=skip_sid)

    def _system_chat(self, room: Room, text: str) -> None:
        message = room.append_chat(ChatMessage.system(text))
        self._broadcast(room, 'room:chat-message', message.to_dict())

    def _broadcast_presence(self) -> None:
        self.transport.emit('presence:update', self.presence.online_user_ids())

    def _vote_update(self, room: Room, suggestion: ProblemSuggestion, voter_id: str) -> None:
        self._broadcast(room, 'room:vote-updated', {
            'suggestionId': suggestion.id,
            'votes': sorted(suggestion.votes),
            'voteCount': len(suggestion.votes),
            'voterId': voter_id,
        })

    def _depart(self, room: Room, user_id: str, username: Optional[str] = None) -> None:
        participant = room.remove_participant(user_id)
        if participant is None:
            return
        self._system_chat(room, f"{username or participant.username} left the room")
        self._broadcast(room, 'room:participant-left', {'userId': user_id})
        self.logger.info(f"[room-leave] code={room.code} user={user_id} remaining={len(room.participants)}")

        if room.is_empty:
            self.store.delete_room(room.code)
            self.logger.info(f"[room-delete] code={room.code}")
            return
        new_host = room.promote_next_host()
        if new_host:
            self._broadcast(room, 'room:host-changed', {'newHostId': new_host})
            self.logger.info(f"[host-change] code={room.code} host={new_host}")

    # ---- presence ----

    def presence_online(self, cmd: PresenceOnline, sid: str) -> Ack:
        self.presence.set_online(cmd.user_id, sid, cmd.username)
        self.logger.info(f"[presence-online] user={cmd.user_id} sid={sid}")
        self._broadcast_presence()
        return None

    def presence_offline(self, cmd: PresenceOffline, sid: str) -> Ack:
        if self.presence.set_offline(cmd.user_id):
            self.logger.info(f"[presence-offline] user={cmd.user_id}")
        self._broadcast_presence()
        return None

    def disconnect(self, sid: str) -> None:
        """Transport closed: drop presence and leave every room bound to it."""
        if self.presence.drop_sid(sid):
            self._broadcast_presence()
        for room in self.store.rooms():
            with self._locked_room(room.code) as current:
                if current is None:
                    continue
                for user_id in current.user_ids_for_sid(sid):
                    self._depart(current, user_id)

    # ---- room lifecycle ----

    def create(self, cmd: CreateRoom, sid: str) -> Ack:
        settings = RoomSettings(
            problem_slug=cmd.problem_slug or '',
            problem_title=cmd.title or '',
            difficulty=normalize_difficulty(cmd.difficulty or self.default_difficulty),
            duration=cmd.duration if cmd.duration and cmd.duration > 0 else self.default_duration,
            is_hardcore=cmd.is_hardcore,
            entry_fee=max(0, cmd.entry_fee),
            external_session_url=cmd.external_session_url,
        )
        host = Participant(user_id=cmd.user_id, username=cmd.username, sid=sid,
                           avatar_url=cmd.avatar_url, is_ready=True)
        room = self.store.create_room(host, settings)
        self.transport.join(sid, channel_for(room.code))
        self.logger.info(f"[room-create] code={room.code} host={cmd.user_id}")
        return {'success': True, 'room': room.to_dict()}

    def join(self, cmd: JoinRoom, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                raise NotFound('Room not found')

            existing = room.participants.get(cmd.user_id)
            if existing is not None:
                # Refresh or reconnect: rebind the session, membership unchanged
                if existing.sid != sid:
                    # The stale session stops receiving this room's broadcasts
                    self.transport.leave(existing.sid, channel_for(room.code))
                    existing.sid = sid
                self.transport.join(sid, channel_for(room.code))
                return {'success': True, 'room': room.to_dict()}

            if room.status != RoomStatus.WAITING:
                raise Conflict('Battle already started')
            if len(room.participants) >= self.max_participants:
                raise Conflict('Room is full')

            participant = Participant(user_id=cmd.user_id, username=cmd.username, sid=sid,
                                      avatar_url=cmd.avatar_url)
            room.add_participant(participant)
            self.transport.join(sid, channel_for(room.code))
            self._broadcast(room, 'room:participant-joined', participant.to_dict(), skip_sid=sid)
            self._system_chat(room, f"{cmd.username} joined the room")
            self.logger.info(f"[room-join] code={room.code} user={cmd.user_id} count={len(room.participants)}")
            return {'success': True, 'room': room.to_dict()}

    def ready(self, cmd: SetReady, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                return None
            participant = room.participants.get(cmd.user_id)
            if participant is None:
                return None
            if room.status != RoomStatus.WAITING or not room.problem_locked:
                self.logger.info(f"[ready-ignored] code={room.code} user={cmd.user_id} status={room.status.value} locked={room.problem_locked}")
                return None
            participant.is_ready = cmd.is_ready
            self._broadcast(room, 'room:participant-updated', {'userId': cmd.user_id, 'isReady': cmd.is_ready})
        return None

    def start(self, cmd: StartRoom, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                raise NotFound('Room not found')
            if not room.is_host(cmd.host_id):
                raise Forbidden('Only host can start')
            if room.status != RoomStatus.WAITING:
                raise Conflict('Battle already started')
            if not room.all_ready():
                raise Conflict('Not everyone is ready')
            room.advance(RoomStatus.WAITING)
            self._broadcast(room, 'room:starting', {'countdown': self.scheduler.delay_sec})
            self.logger.info(f"[room-starting] code={room.code} host={cmd.host_id}")
            code = room.code
        self.scheduler.schedule(code, self._go_live)
        return {'success': True}

    def _go_live(self, code: str) -> None:
        with self._locked_room(code) as room:
            if room is None:
                self.logger.info(f"[timer-abort] room={code} no longer exists")
                return
            if room.status != RoomStatus.STARTING:
                self.logger.info(f"[timer-abort] room={code} status={room.status.value}")
                return
            room.advance(RoomStatus.STARTING)
            room.start_time = int(time.time() * 1000)
            self._broadcast(room, 'room:started', {
                'problem': room.problem(),
                'startTime': room.start_time,
                'duration': room.settings.duration,
            })
            self.logger.info(f"[room-started] code={code} start={room.start_time}")

    def solved(self, cmd: ReportSolved, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None or room.status != RoomStatus.IN_PROGRESS:
                return None
            participant = room.participants.get(cmd.user_id)
            if participant is None or participant.solved:
                return None

            participant.solved = True
            participant.solve_time = cmd.solve_time_ms
            self._broadcast(room, 'room:participant-solved', {
                'userId': cmd.user_id,
                'username': participant.username,
                'solveTime': cmd.solve_time_ms,
            })
            rankings = finish_room(room, cmd.user_id)
            self._broadcast(room, 'room:finished', {'rankings': rankings, 'winnerId': cmd.user_id})
            self.logger.info(f"[room-finish] code={room.code} winner={cmd.user_id} time={cmd.solve_time_ms}ms")
            if self.on_finished is not None:
                self.on_finished(room, rankings)
        return None

    def chat(self, cmd: SendChat, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                return None
            message = room.append_chat(ChatMessage.from_user(cmd.user_id, cmd.username, cmd.text))
            self._broadcast(room, 'room:chat-message', message.to_dict())
        return None

    def leave(self, cmd: LeaveRoom, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None or cmd.user_id not in room.participants:
                return None
            self._depart(room, cmd.user_id, cmd.username)
            self.transport.leave(sid, channel_for(room.code))
        return None

    # ---- problem voting ----

    def suggest(self, cmd: SuggestProblem, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                raise NotFound('Room not found')
            previous = next((s for s in room.suggestions.values() if cmd.user_id in s.votes), None)
            suggestion = voting.suggest(room, cmd.user_id, cmd.username, cmd.url, cmd.slug,
                                        cmd.title, cmd.difficulty)
            self._broadcast(room, 'room:problem-suggested', suggestion.to_dict())
            if previous is not None:
                self._vote_update(room, previous, cmd.user_id)
            return {'success': True, 'suggestion': suggestion.to_dict()}

    def vote(self, cmd: VoteProblem, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                raise NotFound('Room not found')
            previous = next((s for s in room.suggestions.values() if cmd.user_id in s.votes), None)
            target = voting.vote(room, cmd.user_id, cmd.suggestion_id)
            if previous is not None and previous is not target:
                self._vote_update(room, previous, cmd.user_id)
            self._vote_update(room, target, cmd.user_id)
            return {'success': True}

    def lock(self, cmd: LockProblem, sid: str) -> Ack:
        with self._locked_room(cmd.room_code) as room:
            if room is None:
                raise NotFound('Room not found')
            winner = voting.lock(room, cmd.host_id)
            self._broadcast(room, 'room:problem-locked', {**room.problem(), 'voteCount': len(winner.votes)})
            self._broadcast(room, 'room:chat-message', room.chat[-1].to_dict())
            self.logger.info(f"[problem-lock] code={room.code} slug={winner.problem_slug} votes={len(winner.votes)}")
            return {'success': True, 'problem': room.problem()}

    # ---- invites ----

    def invite(self, cmd: SendInvite, sid: str) -> Ack:
        target = self.presence.get(cmd.to_user_id)
        if target is None:
            self.logger.info(f"[invite-dropped] to={cmd.to_user_id} room={cmd.room_code} offline")
            return None
        self.transport.emit('invite:received', {
            'roomCode': cmd.room_code,
            'from': {'username': cmd.from_username},
            'message': f"{cmd.from_username} invited you to battle!",
        }, to=target.sid)
        return None
