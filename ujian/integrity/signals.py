"""
Sinyal proctoring dan capability lingkungan
"""
import enum
import logging

logger = logging.getLogger(__name__)


class SignalType(enum.Enum):
    """Jenis sinyal pelanggaran yang dapat dideteksi"""
    VISIBILITY_HIDDEN = "visibility_hidden"
    WINDOW_BLUR = "window_blur"
    FULLSCREEN_EXIT = "fullscreen_exit"
    FORBIDDEN_KEY = "forbidden_key"
    CLIPBOARD_COPY = "clipboard_copy"
    CLIPBOARD_PASTE = "clipboard_paste"
    CLIPBOARD_CUT = "clipboard_cut"
    CONTEXT_MENU = "context_menu"


VIOLATION_MESSAGES = {
    SignalType.VISIBILITY_HIDDEN: "Meninggalkan tab ujian.",
    SignalType.WINDOW_BLUR: "Kehilangan fokus layar.",
    SignalType.FULLSCREEN_EXIT: "Keluar dari mode layar penuh.",
    SignalType.FORBIDDEN_KEY: "Menekan kombinasi tombol terlarang.",
    SignalType.CLIPBOARD_COPY: "Menyalin teks (copy).",
    SignalType.CLIPBOARD_PASTE: "Menempel teks (paste).",
    SignalType.CLIPBOARD_CUT: "Memotong teks (cut).",
    SignalType.CONTEXT_MENU: "Membuka menu klik kanan.",
}

# Copy/paste/cut sudah dilaporkan lewat on_clipboard, jadi tidak diulang di sini
DEFAULT_FORBIDDEN_KEYS = [
    "ctrl+p", "ctrl+s", "ctrl+u",
    "ctrl+shift+i", "ctrl+shift+j", "alt+tab", "f12", "printscreen",
]


def normalize_key_combo(combo: str) -> str:
    """Normalisasi kombinasi tombol, misalnya 'Shift+Ctrl+I' -> 'ctrl+shift+i'"""
    modifiers_order = ['ctrl', 'alt', 'shift', 'meta']
    aliases = {'control': 'ctrl', 'cmd': 'meta', 'command': 'meta', 'win': 'meta', 'option': 'alt'}
    parts = [p.strip().lower() for p in (combo or '').split('+') if p.strip()]
    parts = [aliases.get(p, p) for p in parts]
    modifiers = [m for m in modifiers_order if m in parts]
    keys = sorted(p for p in parts if p not in modifiers_order)
    return '+'.join(modifiers + keys)


def describe(signal: SignalType, detail: str = None) -> str:
    """Teks pelanggaran untuk ditampilkan ke peserta"""
    message = VIOLATION_MESSAGES.get(signal, signal.value)
    if detail:
        return f"{message} ({detail})"
    return message


class Capability:
    """
    Capability lingkungan (fullscreen, keyboard lock, dll).

    Implementasi untuk platform tertentu meng-override try_acquire/release.
    """

    name = "capability"

    def try_acquire(self) -> bool:
        """Coba aktifkan capability; return False jika tidak didukung"""
        return False

    def release(self):
        """Lepaskan capability"""

    @property
    def is_supported(self) -> bool:
        return False


class NullCapability(Capability):
    """Capability yang tidak didukung lingkungan: selalu no-op"""

    def __init__(self, name: str = "unsupported"):
        self.name = name


class CallbackCapability(Capability):
    """Capability yang didelegasikan ke callback host UI"""

    def __init__(self, name: str, acquire, release=None):
        self.name = name
        self._acquire = acquire
        self._release = release
        self.is_acquired = False

    @property
    def is_supported(self) -> bool:
        return True

    def try_acquire(self) -> bool:
        self.is_acquired = bool(self._acquire())
        return self.is_acquired

    def release(self):
        if self._release and self.is_acquired:
            self._release()
        self.is_acquired = False
