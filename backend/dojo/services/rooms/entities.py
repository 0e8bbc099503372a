import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

SYSTEM_USER_ID = 'system'
SYSTEM_USERNAME = 'System'


class RoomStatus(str, Enum):
    """Room state machine. Transitions only move forward."""
    WAITING = 'waiting'
    STARTING = 'starting'
    IN_PROGRESS = 'in_progress'
    FINISHED = 'finished'


class ChatKind(str, Enum):
    MESSAGE = 'message'
    SYSTEM = 'system'
    INVITE = 'invite'


DIFFICULTIES = ('Easy', 'Medium', 'Hard', 'Unknown')

_NEXT_STATUS = {
    RoomStatus.WAITING: RoomStatus.STARTING,
    RoomStatus.STARTING: RoomStatus.IN_PROGRESS,
    RoomStatus.IN_PROGRESS: RoomStatus.FINISHED,
}


def normalize_difficulty(value: Optional[str]) -> str:
    if not value:
        return 'Unknown'
    value = str(value).strip().capitalize()
    return value if value in DIFFICULTIES else 'Unknown'


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass
class Participant:
    user_id: str
    username: str
    sid: str
    avatar_url: Optional[str] = None
    is_ready: bool = False
    solved: bool = False
    solve_time: Optional[int] = None

    def to_dict(self):
        # Transport ids stay server-side
        return {
            'userId': self.user_id,
            'username': self.username,
            'avatarUrl': self.avatar_url,
            'isReady': self.is_ready,
            'solved': self.solved,
            'solveTime': self.solve_time,
        }


@dataclass(frozen=True)
class ChatMessage:
    id: str
    user_id: str
    username: str
    message: str
    timestamp: str
    type: ChatKind = ChatKind.MESSAGE

    @classmethod
    def from_user(cls, user_id: str, username: str, text: str) -> 'ChatMessage':
        return cls(_short_id('msg'), user_id, username, text, _now_iso(), ChatKind.MESSAGE)

    @classmethod
    def system(cls, text: str) -> 'ChatMessage':
        return cls(_short_id('sys'), SYSTEM_USER_ID, SYSTEM_USERNAME, text, _now_iso(), ChatKind.SYSTEM)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'username': self.username,
            'message': self.message,
            'timestamp': self.timestamp,
            'type': self.type.value,
        }


@dataclass
class ProblemSuggestion:
    id: str
    url: str
    problem_slug: str
    problem_title: str
    difficulty: str
    submitted_by: str
    submitted_by_username: str
    votes: Set[str] = field(default_factory=set)

    def to_dict(self):
        return {
            'id': self.id,
            'url': self.url,
            'problemSlug': self.problem_slug,
            'problemTitle': self.problem_title,
            'difficulty': self.difficulty,
            'submittedBy': self.submitted_by,
            'submittedByUsername': self.submitted_by_username,
            'votes': sorted(self.votes),
            'voteCount': len(self.votes),
        }


@dataclass
class RoomSettings:
    problem_slug: str = ''
    problem_title: str = ''
    difficulty: str = 'Medium'
    duration: int = 30
    is_hardcore: bool = False
    entry_fee: int = 0
    external_session_url: Optional[str] = None


@dataclass(eq=False)
class Room:
    code: str
    host_id: str
    settings: RoomSettings
    status: RoomStatus = RoomStatus.WAITING
    start_time: Optional[int] = None
    participants: Dict[str, Participant] = field(default_factory=dict)
    chat: List[ChatMessage] = field(default_factory=list)
    suggestions: Dict[str, ProblemSuggestion] = field(default_factory=dict)
    problem_locked: bool = False
    winner_id: Optional[str] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def is_host(self, user_id: str) -> bool:
        return user_id == self.host_id

    def all_ready(self) -> bool:
        return all(p.is_ready for p in self.participants.values())

    def advance(self, expected: RoomStatus) -> RoomStatus:
        """Move one step along waiting -> starting -> in_progress -> finished."""
        if self.status != expected or expected not in _NEXT_STATUS:
            raise ValueError(f"cannot advance room {self.code} from {self.status.value}")
        self.status = _NEXT_STATUS[expected]
        return self.status

    def add_participant(self, participant: Participant) -> None:
        self.participants[participant.user_id] = participant

    def remove_participant(self, user_id: str) -> Optional[Participant]:
        return self.participants.pop(user_id, None)

    def user_ids_for_sid(self, sid: str) -> List[str]:
        return [uid for uid, p in self.participants.items() if p.sid == sid]

    def promote_next_host(self) -> Optional[str]:
        """Hand the host role to the earliest remaining participant."""
        if self.host_id in self.participants or not self.participants:
            return None
        self.host_id = next(iter(self.participants))
        return self.host_id

    def append_chat(self, message: ChatMessage) -> ChatMessage:
        self.chat.append(message)
        return message

    def lock_problem(self, suggestion: ProblemSuggestion) -> None:
        self.settings.problem_slug = suggestion.problem_slug
        self.settings.problem_title = suggestion.problem_title
        self.settings.difficulty = suggestion.difficulty
        self.settings.external_session_url = suggestion.url
        self.problem_locked = True

    def problem(self):
        s = self.settings
        return {
            'problemSlug': s.problem_slug,
            'problemTitle': s.problem_title,
            'difficulty': s.difficulty,
            'externalSessionUrl': s.external_session_url,
        }

    def to_dict(self):
        s = self.settings
        return {
            'code': self.code,
            'hostId': self.host_id,
            'status': self.status.value,
            **self.problem(),
            'duration': s.duration,
            'startTime': self.start_time,
            'isHardcore': s.is_hardcore,
            'entryFee': s.entry_fee,
            'participants': [p.to_dict() for p in self.participants.values()],
            'chat': [m.to_dict() for m in self.chat],
            'problemSuggestions': [sg.to_dict() for sg in self.suggestions.values()],
            'problemLocked': self.problem_locked,
        }

    def snapshot(self):
        """Read-only public view without chat, ballots or transport ids."""
        s = self.settings
        return {
            'code': self.code,
            'status': self.status.value,
            **self.problem(),
            'duration': s.duration,
            'isHardcore': s.is_hardcore,
            'participants': [
                {
                    'userId': p.user_id,
                    'username': p.username,
                    'isReady': p.is_ready,
                    'solved': p.solved,
                }
                for p in self.participants.values()
            ],
        }
