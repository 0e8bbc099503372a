import threading
import time
from typing import Callable, Set


class CountdownScheduler:
    """Runs one delayed callback per room code.

    - Runs inline (sleeping in the caller) when ``run_inline`` is set, which
      keeps tests deterministic
    - Otherwise uses the Socket.IO background task API so it cooperates
      with whichever async mode the server runs under
    - A second schedule for a code that is still pending is skipped
    """

    def __init__(self, socketio, logger, delay_sec: float = 3, run_inline: bool = False):
        self.socketio = socketio
        self.logger = logger
        self.delay_sec = delay_sec
        self.run_inline = run_inline
        self._pending: Set[str] = set()
        self._lock = threading.Lock()

    def schedule(self, code: str, fire: Callable[[str], None]) -> bool:
        with self._lock:
            if code in self._pending:
                self.logger.info(f"[timer-skip] room={code} already scheduled")
                return False
            self._pending.add(code)
        self.logger.info(f"[timer-set] room={code} delay={self.delay_sec}s")

        def _worker(room_code: str, delay: float):
            if delay > 0:
                if self.run_inline:
                    time.sleep(delay)
                else:
                    self.socketio.sleep(delay)
            with self._lock:
                self._pending.discard(room_code)
            self.logger.info(f"[timer-fire] room={room_code}")
            fire(room_code)

        if self.run_inline:
            _worker(code, self.delay_sec)
        else:
            self.socketio.start_background_task(_worker, code, self.delay_sec)
        return True
