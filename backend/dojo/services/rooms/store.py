import random
import threading
from typing import Dict, List, Optional

from .entities import ChatMessage, Participant, Room, RoomSettings

# No I/O/0/1: codes are read aloud and typed by hand
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'


class RoomStore:
    """Owns every active Room, keyed by its code."""

    def __init__(self, code_length: int = 6, rng: Optional[random.Random] = None):
        self.code_length = code_length
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()
        self._rng = rng or random.SystemRandom()

    def __len__(self) -> int:
        return len(self._rooms)

    def _generate_code(self) -> str:
        while True:
            code = ''.join(self._rng.choices(ROOM_CODE_ALPHABET, k=self.code_length))
            if code not in self._rooms:
                return code

    def create_room(self, host: Participant, settings: RoomSettings) -> Room:
        with self._lock:
            code = self._generate_code()
            room = Room(code=code, host_id=host.user_id, settings=settings)
            room.add_participant(host)
            room.append_chat(ChatMessage.system(f"{host.username} created the room"))
            self._rooms[code] = room
        return room

    def get_room(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(code)

    def delete_room(self, code: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.pop(code, None)

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())
