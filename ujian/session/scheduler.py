"""
Clock dan scheduler untuk task periodik sesi ujian
"""
import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)


class SystemClock:
    """Clock berbasis waktu sistem (UTC)"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TaskHandle:
    """Handle yang bisa dibatalkan untuk callback terjadwal"""

    def __init__(self, timer: asyncio.TimerHandle = None):
        self._timer = timer
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class PeriodicTask(TaskHandle):
    """Callback yang dijalankan berulang dengan interval tetap"""

    def __init__(self, scheduler: 'Scheduler', interval: float, callback: Callable,
                 name: str = None, run_immediately: bool = False):
        super().__init__()
        self.scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self.name = name or getattr(callback, '__name__', 'periodic')
        self.run_immediately = run_immediately
        self.running = False
        self._task: Optional[asyncio.Task] = None

    def start(self):
        if self.running:
            return
        self.running = True
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)

    async def _loop(self):
        if self.run_immediately:
            await self.scheduler.invoke(self.callback, self.name)
        while self.running:
            await asyncio.sleep(self.interval)
            if not self.running:
                break
            await self.scheduler.invoke(self.callback, self.name)

    def cancel(self):
        """
        Stop task. Jika dipanggil dari dalam callback task ini sendiri,
        loop hanya berhenti setelah callback selesai.
        """
        super().cancel()
        self.running = False
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()


class Scheduler:
    """Scheduler cooperative di atas event loop asyncio"""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    async def invoke(self, callback: Callable, name: str = None):
        """Jalankan callback (sync atau async); error dicatat, tidak diteruskan"""
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Task %s gagal", name or getattr(callback, '__name__', callback))

    def call_later(self, delay: float, callback: Callable) -> TaskHandle:
        """Jalankan callback satu kali setelah `delay` detik"""
        handle = TaskHandle()

        def _fire():
            if not handle.cancelled:
                self.spawn(self.invoke(callback))

        handle._timer = asyncio.get_running_loop().call_later(delay, _fire)
        return handle

    def call_every(self, interval: float, callback: Callable, name: str = None,
                   run_immediately: bool = False) -> PeriodicTask:
        """Jalankan callback setiap `interval` detik sampai dibatalkan"""
        task = PeriodicTask(self, interval, callback, name=name, run_immediately=run_immediately)
        task.start()
        return task

    def spawn(self, coro) -> asyncio.Task:
        """Jalankan coroutine sebagai task terpisah (tidak di-await pemanggil)"""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Tunggu sampai semua task yang di-spawn selesai"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
