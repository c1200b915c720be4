"""
Monitor integritas: ubah sinyal proctoring menjadi pelanggaran
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .signals import (SignalType, Capability, DEFAULT_FORBIDDEN_KEYS,
                      describe, normalize_key_combo)
from ..session.scheduler import Scheduler, SystemClock

logger = logging.getLogger(__name__)

FULLSCREEN = "fullscreen"
KEYBOARD_LOCK = "keyboard_lock"


class ViolationEvent:
    """Satu kejadian pelanggaran yang terdeteksi"""

    def __init__(self, signal: SignalType, description: str, timestamp: datetime):
        self.signal = signal
        self.description = description
        self.timestamp = timestamp

    def __repr__(self):
        return f"<ViolationEvent(signal={self.signal.value}, timestamp={self.timestamp.isoformat()})>"


class IntegrityMonitor:
    """Monitor untuk sinyal proctoring selama sesi aktif"""

    def __init__(self, record_violation: Callable, is_active: Callable[[], bool],
                 scheduler: Scheduler, capabilities: Dict[str, Capability] = None,
                 forbidden_keys: Iterable[str] = None, require_fullscreen: bool = True,
                 clock=None):
        """
        Initialize integrity monitor

        Args:
            record_violation: Callback async(cause) ke SessionController
            is_active: Callable; sinyal hanya diproses jika True
            scheduler: Scheduler untuk menjalankan handler dari callback host
            capabilities: Capability lingkungan, key 'fullscreen', 'keyboard_lock', dll
            forbidden_keys: Kombinasi tombol terlarang
            require_fullscreen: Keluar fullscreen memblokir interaksi soal
            clock: Sumber waktu
        """
        self.record_violation = record_violation
        self.is_active = is_active
        self.scheduler = scheduler
        self.capabilities = dict(capabilities or {})
        keys = DEFAULT_FORBIDDEN_KEYS if forbidden_keys is None else forbidden_keys
        self.forbidden_keys = {normalize_key_combo(k) for k in keys}
        self.require_fullscreen = require_fullscreen
        self.clock = clock or SystemClock()
        self.is_running = False
        self.fullscreen_required = False
        self.events: List[ViolationEvent] = []

    def _try_acquire(self, name: str) -> bool:
        capability = self.capabilities.get(name)
        if capability is None:
            return False
        try:
            return bool(capability.try_acquire())
        except Exception as e:
            # Capability yang tidak didukung tidak boleh menggagalkan sesi
            logger.debug("Capability %s tidak tersedia: %s", name, e)
            return False

    def _release(self, name: str):
        try:
            self.capabilities[name].release()
        except Exception as e:
            logger.debug("Gagal melepas capability %s: %s", name, e)

    def start(self):
        """Start monitoring dan coba aktifkan semua capability"""
        if self.is_running:
            return
        self.is_running = True
        for name in self.capabilities:
            acquired = self._try_acquire(name)
            logger.info("Capability %s: %s", name, "aktif" if acquired else "tidak didukung")

    def stop(self):
        """Stop monitoring dan lepas semua capability"""
        if not self.is_running:
            return
        self.is_running = False
        self.fullscreen_required = False
        for name in self.capabilities:
            self._release(name)

    @property
    def is_blocking(self) -> bool:
        """True jika interaksi soal ditahan sampai fullscreen aktif kembali"""
        return self.is_running and self.fullscreen_required

    async def report(self, signal: SignalType, detail: str = None) -> Optional[int]:
        """
        Proses satu kejadian sinyal

        Returns:
            Jumlah pelanggaran terbaru, atau None jika sinyal diabaikan
        """
        if not self.is_running or not self.is_active():
            return None

        description = describe(signal, detail)
        self.events.append(ViolationEvent(signal, description, self.clock.now()))
        if signal == SignalType.FULLSCREEN_EXIT and self.require_fullscreen:
            self.fullscreen_required = True

        try:
            return await self.record_violation(description)
        except Exception:
            logger.exception("Error recording violation %s", signal.value)
            return None

    def on_signal(self, signal: SignalType, detail: str = None):
        """Entry point sync untuk event dari host UI"""
        if not self.is_running:
            return None
        return self.scheduler.spawn(self.report(signal, detail))

    # Adapter untuk event host UI
    def on_visibility_change(self, hidden: bool):
        if hidden:
            return self.on_signal(SignalType.VISIBILITY_HIDDEN)
        return None

    def on_window_blur(self):
        return self.on_signal(SignalType.WINDOW_BLUR)

    def on_fullscreen_change(self, is_fullscreen: bool):
        if is_fullscreen:
            self.fullscreen_required = False
            return None
        return self.on_signal(SignalType.FULLSCREEN_EXIT)

    def on_key(self, combo: str):
        normalized = normalize_key_combo(combo)
        if normalized in self.forbidden_keys:
            return self.on_signal(SignalType.FORBIDDEN_KEY, normalized)
        return None

    def on_clipboard(self, action: str):
        signals = {
            'copy': SignalType.CLIPBOARD_COPY,
            'paste': SignalType.CLIPBOARD_PASTE,
            'cut': SignalType.CLIPBOARD_CUT,
        }
        signal = signals.get((action or '').lower())
        if signal is None:
            return None
        return self.on_signal(signal)

    def on_context_menu(self):
        return self.on_signal(SignalType.CONTEXT_MENU)

    def reacquire_fullscreen(self) -> bool:
        """Coba masuk fullscreen lagi; membuka blokir jika berhasil"""
        if not self.is_running:
            return False
        if self._try_acquire(FULLSCREEN):
            self.fullscreen_required = False
            return True
        return False
