"""
Timekeeper: hitung mundur ke deadline absolut
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .scheduler import Scheduler, SystemClock, PeriodicTask

logger = logging.getLogger(__name__)


class Timekeeper:
    """
    Countdown yang selalu menghitung ulang sisa waktu sebagai end_time - now.

    Karena tidak ada counter yang dikurangi, tick yang terlewat (tab
    disuspend, laptop sleep) tidak membuat timer melenceng.
    """

    def __init__(self, end_time: datetime, on_expire: Callable, scheduler: Scheduler,
                 clock=None, tick_interval: float = 1.0):
        """
        Initialize timekeeper

        Args:
            end_time: Deadline absolut (UTC)
            on_expire: Callback (async) saat waktu habis, dipanggil tepat sekali
            scheduler: Scheduler untuk tick periodik
            clock: Sumber waktu (default: SystemClock)
            tick_interval: Interval tick (detik)
        """
        self.end_time = end_time
        self.on_expire = on_expire
        self.scheduler = scheduler
        self.clock = clock or SystemClock()
        self.tick_interval = tick_interval
        self.is_running = False
        self.has_fired = False
        self.last_remaining: Optional[int] = None
        self._task: Optional[PeriodicTask] = None

        # Callback untuk UI: tick_callback(remaining_seconds)
        self.tick_callback: Optional[Callable] = None

    def set_tick_callback(self, callback: Callable):
        """Set callback untuk update tampilan timer"""
        self.tick_callback = callback

    def start(self):
        """Start countdown"""
        if self.is_running or self.has_fired:
            return
        self.is_running = True
        self._task = self.scheduler.call_every(self.tick_interval, self.tick, name="timekeeper")

    def stop(self):
        """Stop countdown"""
        self.is_running = False
        if self._task:
            self._task.cancel()
            self._task = None

    def remaining_seconds(self) -> int:
        """Sisa waktu dalam detik (tidak pernah negatif)"""
        diff = (self.end_time - self.clock.now()).total_seconds()
        return max(0, int(diff))

    def format_remaining(self) -> str:
        """Sisa waktu dalam format M:SS"""
        seconds = self.remaining_seconds() if self.last_remaining is None else self.last_remaining
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}:{secs:02d}"

    async def tick(self):
        """Satu tick timer; memicu on_expire jika deadline sudah lewat"""
        if not self.is_running or self.has_fired:
            return

        try:
            expired = (self.end_time - self.clock.now()).total_seconds() <= 0
            self.last_remaining = self.remaining_seconds()
            if self.tick_callback:
                self.tick_callback(self.last_remaining)
        except Exception:
            logger.exception("Error in timekeeper tick")
            return

        if not expired:
            return

        self.has_fired = True
        self.stop()
        logger.info("Waktu ujian habis, memicu pengumpulan otomatis")
        try:
            await self.on_expire()
        except Exception:
            logger.exception("Error in on_expire callback")
