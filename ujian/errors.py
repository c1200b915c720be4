"""
Hierarki exception untuk runtime sesi ujian
"""


class UjianError(Exception):
    """Base exception untuk semua error runtime ujian"""


class ValidationError(UjianError):
    """Input yang bisa diperbaiki oleh peserta (identitas kosong, jawaban tidak valid)"""


class AccessDenied(ValidationError):
    """Ujian tidak boleh dibuka (kode salah, tidak aktif, di luar jadwal, sudah dikerjakan)"""


class PersistenceError(UjianError):
    """Base error untuk operasi penyimpanan"""


class TransportError(PersistenceError):
    """Remote store tidak dapat dijangkau"""


class AuthorizationError(PersistenceError):
    """Remote store menolak operasi (permission denied)"""


class StorageError(PersistenceError):
    """Local store gagal membaca/menulis"""


class CommitFailure(PersistenceError):
    """Operasi gagal di remote store maupun local store"""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause
