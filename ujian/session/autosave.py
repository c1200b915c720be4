"""
Autosave draft jawaban ke penyimpanan lokal untuk crash recovery
"""
import logging
from typing import Callable, Dict, List, Optional

from .models import Answer, DraftSnapshot, ExamDefinition, blank_answer
from .scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)


def merge_answers(exam: ExamDefinition, saved: List[Answer]) -> Dict[str, Answer]:
    """
    Gabungkan jawaban tersimpan ke set jawaban awal per soal.

    Jawaban untuk soal yang sudah tidak ada, atau yang jenisnya tidak cocok
    dengan soal, dibuang.
    """
    merged = {q.id: blank_answer(q) for q in exam.questions}
    for answer in saved:
        question = exam.get_question(answer.question_id)
        if question is None or answer.question_type != question.type:
            continue
        merged[answer.question_id] = answer
    return merged


class AutosavePersister:
    """Debounced writer untuk draft jawaban, key (exam_id, student_id)"""

    def __init__(self, draft_store, exam_id: str, student_id: str,
                 scheduler: Scheduler, delay: float = 1.0,
                 is_active: Callable[[], bool] = None):
        """
        Initialize autosave

        Args:
            draft_store: Store dengan save_draft/load_draft/delete_draft (DatabaseManager)
            exam_id: ID ujian
            student_id: ID peserta
            scheduler: Scheduler untuk debounce timer
            delay: Debounce delay (detik)
            is_active: Callable; write dari timer debounce hanya jika True
        """
        self.draft_store = draft_store
        self.exam_id = exam_id
        self.student_id = student_id
        self.scheduler = scheduler
        self.delay = delay
        self.is_active = is_active or (lambda: True)
        self.save_count = 0
        self._timer: Optional[TaskHandle] = None
        self._snapshot_source: Optional[Callable[[], DraftSnapshot]] = None

    def schedule(self, snapshot_source: Callable[[], DraftSnapshot]):
        """(Re)start debounce timer; snapshot diambil saat timer jalan"""
        self._snapshot_source = snapshot_source
        self.cancel()
        self._timer = self.scheduler.call_later(self.delay, self._debounced_flush)

    @property
    def is_pending(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def cancel(self):
        """Batalkan timer debounce yang belum jalan"""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _debounced_flush(self):
        # Task yang sudah di-spawn sebelum cancel() tetap jalan, jadi cek ulang di sini
        if not self.is_active():
            return False
        return self.flush()

    def flush(self, snapshot_source: Callable[[], DraftSnapshot] = None) -> bool:
        """Tulis snapshot sekarang juga"""
        self._timer = None
        if snapshot_source is not None:
            self._snapshot_source = snapshot_source
        if self._snapshot_source is None:
            return False
        try:
            snapshot = self._snapshot_source()
            self.draft_store.save_draft(self.exam_id, self.student_id, snapshot.to_dict())
        except Exception:
            logger.exception("Gagal menyimpan draft %s/%s", self.exam_id, self.student_id)
            return False
        self.save_count += 1
        return True

    def load(self) -> Optional[DraftSnapshot]:
        """Baca draft tersimpan (None jika tidak ada atau tidak terbaca)"""
        try:
            data = self.draft_store.load_draft(self.exam_id, self.student_id)
        except Exception:
            logger.exception("Gagal membaca draft %s/%s", self.exam_id, self.student_id)
            return None
        if not data:
            return None
        return DraftSnapshot.from_dict(data)

    def restore(self, exam: ExamDefinition):
        """Kembalikan (answers per soal, identity) dari draft, atau None"""
        snapshot = self.load()
        if snapshot is None:
            return None
        logger.info("Draft ditemukan untuk %s/%s, memulihkan jawaban", self.exam_id, self.student_id)
        return merge_answers(exam, snapshot.answers), snapshot.identity

    def clear(self):
        """Hapus draft (hanya setelah submit berhasil)"""
        self.cancel()
        try:
            self.draft_store.delete_draft(self.exam_id, self.student_id)
        except Exception:
            logger.exception("Gagal menghapus draft %s/%s", self.exam_id, self.student_id)
