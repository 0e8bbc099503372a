"""Inbound Socket.IO commands, one dataclass per event name.

``parse_command`` turns a raw event name and JSON payload into the matching
command, raising ``InvalidPayload`` for missing or mistyped fields.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from .errors import InvalidPayload

_MISSING = object()


def _field(data: Dict[str, Any], key: str, default: Any = _MISSING) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        if default is _MISSING:
            raise InvalidPayload(key)
        return default
    return value


def _str(data, key, default: Any = _MISSING) -> Optional[str]:
    value = _field(data, key, default)
    if value is None:
        return None
    if isinstance(value, (dict, list, bool)):
        raise InvalidPayload(key)
    value = str(value)
    if default is _MISSING and not value:
        raise InvalidPayload(key)
    return value


def _code(data, key='roomCode') -> str:
    return _str(data, key).strip().upper()


def _int(data, key, default: Any = _MISSING) -> Optional[int]:
    value = _field(data, key, default)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidPayload(key)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidPayload(key)


def _bool(data, key, default: Any = _MISSING) -> bool:
    value = _field(data, key, default)
    if not isinstance(value, bool):
        raise InvalidPayload(key)
    return value


@dataclass(frozen=True)
class PresenceOnline:
    EVENT = 'presence:online'
    user_id: str
    username: str

    @classmethod
    def from_payload(cls, data):
        return cls(_str(data, 'userId'), _str(data, 'username', ''))


@dataclass(frozen=True)
class PresenceOffline:
    EVENT = 'presence:offline'
    user_id: str

    @classmethod
    def from_payload(cls, data):
        return cls(_str(data, 'userId'))


@dataclass(frozen=True)
class CreateRoom:
    EVENT = 'room:create'
    user_id: str
    username: str
    avatar_url: Optional[str] = None
    problem_slug: Optional[str] = None
    title: Optional[str] = None
    difficulty: Optional[str] = None
    duration: Optional[int] = None
    is_hardcore: bool = False
    entry_fee: int = 0
    external_session_url: Optional[str] = None

    @classmethod
    def from_payload(cls, data):
        return cls(
            user_id=_str(data, 'userId'),
            username=_str(data, 'username'),
            avatar_url=_str(data, 'avatarUrl', None),
            problem_slug=_str(data, 'problemSlug', None),
            title=_str(data, 'title', None),
            difficulty=_str(data, 'difficulty', None),
            duration=_int(data, 'duration', None),
            is_hardcore=_bool(data, 'isHardcore', False),
            entry_fee=_int(data, 'entryFee', 0),
            external_session_url=_str(data, 'externalSessionUrl', None),
        )


@dataclass(frozen=True)
class JoinRoom:
    EVENT = 'room:join'
    room_code: str
    user_id: str
    username: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'userId'), _str(data, 'username'),
                   _str(data, 'avatarUrl', None))


@dataclass(frozen=True)
class SetReady:
    EVENT = 'room:ready'
    room_code: str
    user_id: str
    is_ready: bool

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'userId'), _bool(data, 'isReady'))


@dataclass(frozen=True)
class StartRoom:
    EVENT = 'room:start'
    room_code: str
    host_id: str

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'hostId'))


@dataclass(frozen=True)
class ReportSolved:
    EVENT = 'room:solved'
    room_code: str
    user_id: str
    solve_time_ms: int

    @classmethod
    def from_payload(cls, data):
        solve_time = _int(data, 'solveTimeMs')
        if solve_time < 0:
            raise InvalidPayload('solveTimeMs')
        return cls(_code(data), _str(data, 'userId'), solve_time)


@dataclass(frozen=True)
class SendChat:
    EVENT = 'room:chat'
    room_code: str
    user_id: str
    username: str
    text: str

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'userId'), _str(data, 'username', ''),
                   _str(data, 'text'))


@dataclass(frozen=True)
class SuggestProblem:
    EVENT = 'room:suggest-problem'
    room_code: str
    user_id: str
    username: str
    url: str
    slug: str
    title: str
    difficulty: str

    @classmethod
    def from_payload(cls, data):
        return cls(
            room_code=_code(data),
            user_id=_str(data, 'userId'),
            username=_str(data, 'username', ''),
            url=_str(data, 'url', ''),
            slug=_str(data, 'slug'),
            title=_str(data, 'title', ''),
            difficulty=_str(data, 'difficulty', 'Unknown'),
        )


@dataclass(frozen=True)
class VoteProblem:
    EVENT = 'room:vote-problem'
    room_code: str
    user_id: str
    suggestion_id: str

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'userId'), _str(data, 'suggestionId'))


@dataclass(frozen=True)
class LockProblem:
    EVENT = 'room:lock-problem'
    room_code: str
    host_id: str

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'hostId'))


@dataclass(frozen=True)
class LeaveRoom:
    EVENT = 'room:leave'
    room_code: str
    user_id: str
    username: Optional[str] = None

    @classmethod
    def from_payload(cls, data):
        return cls(_code(data), _str(data, 'userId'), _str(data, 'username', None))


@dataclass(frozen=True)
class SendInvite:
    EVENT = 'invite:send'
    to_user_id: str
    room_code: str
    from_username: str

    @classmethod
    def from_payload(cls, data):
        return cls(_str(data, 'toUserId'), _code(data), _str(data, 'fromUsername', ''))


COMMANDS: Dict[str, Type] = {
    cmd.EVENT: cmd
    for cmd in (
        PresenceOnline, PresenceOffline, CreateRoom, JoinRoom, SetReady,
        StartRoom, ReportSolved, SendChat, SuggestProblem, VoteProblem,
        LockProblem, LeaveRoom, SendInvite,
    )
}


def parse_command(event: str, data: Any):
    if not isinstance(data, dict):
        raise InvalidPayload('body')
    try:
        cls = COMMANDS[event]
    except KeyError:
        raise InvalidPayload('event')
    return cls.from_payload(data)
