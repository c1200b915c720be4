"""
Validasi akses ujian sebelum sesi dibuat
"""
import logging

from .models import ExamDefinition
from .scheduler import SystemClock
from ..errors import AccessDenied

logger = logging.getLogger(__name__)


async def open_exam(gateway, access_code: str, student_id: str, clock=None) -> ExamDefinition:
    """
    Cari ujian berdasarkan kode akses dan pastikan peserta boleh mengerjakannya

    Args:
        gateway: PersistenceGateway
        access_code: Kode akses dari dosen
        student_id: ID akun peserta
        clock: Sumber waktu

    Returns:
        ExamDefinition yang siap dipakai SessionController

    Raises:
        AccessDenied: kode tidak valid, ujian tidak aktif, di luar jadwal,
            atau peserta sudah mengumpulkan
    """
    clock = clock or SystemClock()

    exam = await gateway.find_exam_by_access_code(access_code)
    if exam is None:
        raise AccessDenied("Kode ujian tidak valid atau belum dipublish oleh Dosen.")
    if not exam.is_active:
        raise AccessDenied("Ujian ini tidak aktif.")

    try:
        submission = await gateway.get_submission(exam.id, student_id)
    except ValueError as e:
        raise AccessDenied(str(e)) from e
    if submission is not None:
        raise AccessDenied("Anda sudah mengerjakan ujian ini.")

    now = clock.now()
    if now < exam.start_time:
        raise AccessDenied(f"Ujian belum dimulai. Harap kembali pada {exam.start_time.isoformat()}")
    if now >= exam.end_time:
        raise AccessDenied("Waktu ujian telah berakhir.")

    logger.info("Peserta %s membuka ujian %s", student_id, exam.id)
    return exam
