"""
Heartbeat reporter: push status live peserta ke persistence gateway
"""
import asyncio
import logging
from typing import Callable, Optional

from .models import LiveSessionRecord
from .scheduler import Scheduler, PeriodicTask
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class HeartbeatReporter:
    """
    Push LiveSessionRecord secara periodik selama sesi aktif.

    Heartbeat bersifat best-effort: kegagalan dihitung, dicatat, dan
    dilaporkan lewat failure callback, tapi tidak pernah menggagalkan sesi.
    """

    def __init__(self, gateway, record_source: Callable[[], LiveSessionRecord],
                 is_active: Callable[[], bool], scheduler: Scheduler,
                 interval: float = 2.0, max_retries: int = 2, backoff: float = 0.5):
        """
        Initialize heartbeat reporter

        Args:
            gateway: PersistenceGateway (upsert_live_session)
            record_source: Callable yang membuat record terbaru
            is_active: Callable; push hanya dilakukan jika True
            scheduler: Scheduler untuk interval
            interval: Interval heartbeat (detik)
            max_retries: Jumlah retry per push
            backoff: Delay awal retry (detik), dikali 2 setiap percobaan
        """
        self.gateway = gateway
        self.record_source = record_source
        self.is_active = is_active
        self.scheduler = scheduler
        self.interval = interval
        self.max_retries = max_retries
        self.backoff = backoff
        self.sent_count = 0
        self.failed_count = 0
        self.last_error: Optional[Exception] = None
        self._task: Optional[PeriodicTask] = None

        # Callbacks
        self.failure_callback: Optional[Callable] = None

    def set_failure_callback(self, callback: Callable):
        """Set callback(error) untuk heartbeat yang gagal"""
        self.failure_callback = callback

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(self):
        """Start heartbeat periodik (push pertama langsung)"""
        if self._task is not None:
            return
        self._task = self.scheduler.call_every(
            self.interval, self.push, name="heartbeat", run_immediately=True
        )

    def stop(self):
        """Stop heartbeat"""
        if self._task:
            self._task.cancel()
            self._task = None

    def push_now(self):
        """Push di luar jadwal (misalnya setelah pelanggaran), tanpa menunggu"""
        return self.scheduler.spawn(self.push())

    async def push(self) -> bool:
        """Kirim satu heartbeat; return True jika berhasil"""
        for attempt in range(self.max_retries + 1):
            # Cek ulang sebelum setiap percobaan: sesi yang sudah dikunci tidak boleh mengirim heartbeat
            if not self.is_active():
                return False
            try:
                record = self.record_source()
                await self.gateway.upsert_live_session(record)
            except PersistenceError as e:
                self.last_error = e
                logger.warning("Heartbeat gagal (percobaan %d): %s", attempt + 1, e)
                if attempt < self.max_retries:
                    await asyncio.sleep(self.backoff * (2 ** attempt))
                continue
            self.sent_count += 1
            return True

        self.failed_count += 1
        if self.failure_callback:
            try:
                self.failure_callback(self.last_error)
            except Exception:
                logger.exception("Error in heartbeat failure callback")
        return False
