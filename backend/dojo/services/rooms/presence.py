import threading
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class PresenceEntry:
    user_id: str
    sid: str
    username: str


class PresenceRegistry:
    """Which users are online and on which transport session."""

    def __init__(self):
        self._entries: Dict[str, PresenceEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def set_online(self, user_id: str, sid: str, username: str) -> PresenceEntry:
        entry = PresenceEntry(user_id=user_id, sid=sid, username=username)
        with self._lock:
            self._entries[user_id] = entry
        return entry

    def set_offline(self, user_id: str) -> bool:
        with self._lock:
            return self._entries.pop(user_id, None) is not None

    def drop_sid(self, sid: str) -> List[str]:
        """Forget every user bound to a closed session; returns their ids."""
        with self._lock:
            gone = [uid for uid, e in self._entries.items() if e.sid == sid]
            for uid in gone:
                del self._entries[uid]
        return gone

    def get(self, user_id: str) -> Optional[PresenceEntry]:
        return self._entries.get(user_id)

    def online_user_ids(self) -> List[str]:
        with self._lock:
            return list(self._entries)
