"""
SessionController - state machine sesi ujian
"""
import logging
import random
from functools import partial
from typing import Callable, Dict, List, Optional

from .models import (ExamDefinition, Question, QuestionType, Identity, SessionState,
                     SubmitReason, MultipleChoiceAnswer, EssayAnswer, GradedAnswer,
                     Submission, LiveSessionRecord, DraftSnapshot, blank_answer,
                     composite_id)
from .scheduler import Scheduler, SystemClock
from .timekeeper import Timekeeper
from .autosave import AutosavePersister
from .heartbeat import HeartbeatReporter
from ..integrity.monitor import IntegrityMonitor
from ..errors import ValidationError, AccessDenied, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_MAX_VIOLATIONS = 3
DISQUALIFIED_TAG = " [DISKUALIFIKASI]"


class SessionController:
    """
    Orkestrasi satu sesi ujian: identitas, start, jawaban, pelanggaran, submit.

    Lifecycle: SETUP -> ACTIVE -> SUBMITTING -> SUBMITTED | DISQUALIFIED.
    Flag `is_locked` di-set secara sinkron di awal submit sehingga paling
    banyak satu commit terjadi walaupun Timekeeper dan IntegrityMonitor
    memicu submit bersamaan.
    """

    def __init__(self, exam: ExamDefinition, student_id: str, gateway, draft_store,
                 config: Dict = None, clock=None, scheduler: Scheduler = None,
                 capabilities: Dict = None, rng: random.Random = None):
        """
        Initialize session

        Args:
            exam: Definisi ujian
            student_id: ID akun peserta
            gateway: PersistenceGateway untuk heartbeat dan submission
            draft_store: Store lokal untuk draft (DatabaseManager)
            config: Konfigurasi (section 'session' dan 'integrity')
            clock: Sumber waktu
            scheduler: Scheduler task periodik
            capabilities: Capability lingkungan untuk IntegrityMonitor
            rng: Random generator untuk urutan soal

        Raises:
            ValidationError: ID ujian atau peserta tidak bisa dipakai sebagai key record
        """
        try:
            composite_id(exam.id, student_id)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        config = config or {}
        session_config = config.get('session', {})
        integrity_config = config.get('integrity', {})

        self.exam = exam
        self.student_id = student_id
        self.gateway = gateway
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or Scheduler()
        self.rng = rng or random.Random()
        self.max_violations = session_config.get('max_violations', DEFAULT_MAX_VIOLATIONS)
        self.disqualified_tag = session_config.get('disqualified_tag', DISQUALIFIED_TAG)

        # State
        self.state = SessionState.SETUP
        self.is_locked = False
        self.identity = Identity()
        self.violation_count = 0
        self.started_at = None
        self.question_order: List[Question] = []
        self.answers = {q.id: blank_answer(q) for q in exam.questions}
        self.submission: Optional[Submission] = None
        self.is_persisted = False
        self.last_error: Optional[Exception] = None

        # Callbacks
        self.warning_callback: Optional[Callable] = None
        self.state_callback: Optional[Callable] = None

        # Components
        self.autosave = AutosavePersister(
            draft_store, exam.id, student_id, self.scheduler,
            delay=session_config.get('autosave_delay', 1.0),
            is_active=self.accepts_mutation
        )
        self.timekeeper = Timekeeper(
            exam.end_time, partial(self.submit, SubmitReason.TIMEOUT), self.scheduler,
            clock=self.clock, tick_interval=session_config.get('tick_interval', 1.0)
        )
        self.monitor = IntegrityMonitor(
            self.record_violation, self.accepts_mutation, self.scheduler,
            capabilities=capabilities,
            forbidden_keys=integrity_config.get('forbidden_keys'),
            require_fullscreen=integrity_config.get('require_fullscreen', True),
            clock=self.clock
        )
        self.heartbeat = HeartbeatReporter(
            gateway, self._live_record, self.accepts_mutation, self.scheduler,
            interval=session_config.get('heartbeat_interval', 2.0),
            max_retries=session_config.get('heartbeat_retries', 2),
            backoff=session_config.get('heartbeat_backoff', 0.5)
        )

        # Crash recovery
        self.restored_from_draft = False
        restored = self.autosave.restore(exam)
        if restored is not None:
            self.answers, self.identity = restored
            self.restored_from_draft = True

    def set_warning_callback(self, callback: Callable):
        """Set callback(message) untuk peringatan non-fatal"""
        self.warning_callback = callback

    def set_state_callback(self, callback: Callable):
        """Set callback(old_state, new_state)"""
        self.state_callback = callback

    def _set_state(self, new_state: SessionState):
        old_state, self.state = self.state, new_state
        logger.info("Sesi %s/%s: %s -> %s", self.exam.id, self.student_id,
                    old_state.value, new_state.value)
        if self.state_callback:
            try:
                self.state_callback(old_state, new_state)
            except Exception:
                logger.exception("Error in state callback")

    def _warn(self, message: str):
        logger.warning(message)
        if self.warning_callback:
            try:
                self.warning_callback(message)
            except Exception:
                logger.exception("Error in warning callback")

    def accepts_mutation(self) -> bool:
        """True selama sesi ACTIVE dan belum dikunci"""
        return self.state == SessionState.ACTIVE and not self.is_locked

    @property
    def is_blocked(self) -> bool:
        """Interaksi soal ditahan (misalnya menunggu fullscreen)"""
        return self.monitor.is_blocking

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.SUBMITTED, SessionState.DISQUALIFIED)

    # Lifecycle
    def start(self, identity: Identity = None):
        """
        Mulai ujian

        Args:
            identity: Identitas peserta; None = pakai identitas dari draft

        Raises:
            ValidationError: identitas kosong atau sesi bukan SETUP
            AccessDenied: di luar access window ujian
        """
        if self.state != SessionState.SETUP:
            raise ValidationError("Sesi ujian sudah dimulai.")

        candidate = identity if identity is not None else self.identity
        if not candidate.is_complete:
            raise ValidationError("Lengkapi identitas (nama dan NIM) sebelum memulai ujian.")

        now = self.clock.now()
        if now < self.exam.start_time:
            raise AccessDenied(f"Ujian belum dimulai. Harap kembali pada {self.exam.start_time.isoformat()}")
        if now >= self.exam.end_time:
            raise AccessDenied("Waktu ujian telah berakhir.")

        self.identity = candidate
        self.started_at = now
        self.question_order = self.rng.sample(list(self.exam.questions), len(self.exam.questions))
        self._set_state(SessionState.ACTIVE)

        self.timekeeper.start()
        self.monitor.start()
        self.heartbeat.start()
        self.autosave.schedule(self._snapshot)

    def _snapshot(self) -> DraftSnapshot:
        return DraftSnapshot([self.answers[q.id] for q in self.exam.questions], self.identity)

    def _live_record(self) -> LiveSessionRecord:
        return LiveSessionRecord(
            exam_id=self.exam.id,
            student_id=self.student_id,
            student_name=self.identity.name,
            started_at=self.started_at,
            last_heartbeat=self.clock.now(),
            violation_count=self.violation_count
        )

    # Answers
    def update_answer(self, question_id: str, value) -> bool:
        """
        Ubah jawaban satu soal

        Returns:
            False jika sesi tidak menerima perubahan (terkunci atau diblokir)
        """
        if not self.accepts_mutation() or self.is_blocked:
            return False

        question = self.exam.get_question(question_id)
        if question is None:
            raise ValidationError(f"Soal tidak dikenal: {question_id}")

        if question.type == QuestionType.MULTIPLE_CHOICE:
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)
                                      or not 0 <= value < len(question.options)):
                raise ValidationError(f"Pilihan tidak valid untuk soal {question_id}: {value!r}")
            answer = MultipleChoiceAnswer(question_id, value)
        else:
            if not isinstance(value, str):
                raise ValidationError(f"Jawaban essay harus berupa teks: {question_id}")
            answer = EssayAnswer(question_id, value)

        self.answers[question_id] = answer
        self.autosave.schedule(self._snapshot)
        return True

    # Violations
    async def record_violation(self, cause: str) -> Optional[int]:
        """
        Catat satu pelanggaran

        Returns:
            Jumlah pelanggaran terbaru, atau None jika sesi sudah terkunci
        """
        if not self.accepts_mutation():
            return None

        self.violation_count += 1
        count = self.violation_count
        self.heartbeat.push_now()

        if count >= self.max_violations:
            logger.warning("Batas pelanggaran tercapai (%d), sesi didiskualifikasi", count)
            await self.submit(SubmitReason.VIOLATION)
            return count

        self._warn(f"PELANGGARAN ({count}/{self.max_violations}): {cause}")
        return count

    # Submit
    def _grade(self, reason: SubmitReason) -> Submission:
        total_score = 0
        graded = []
        for question in self.exam.questions:
            answer = self.answers.get(question.id) or blank_answer(question)
            score = 0
            if (question.type == QuestionType.MULTIPLE_CHOICE
                    and answer.selected_option_index is not None
                    and answer.selected_option_index == question.correct_option_index):
                score = question.points
            total_score += score
            graded.append(GradedAnswer(answer, score))

        disqualified = reason == SubmitReason.VIOLATION
        name = self.identity.name + (self.disqualified_tag if disqualified else '')
        return Submission(
            exam_id=self.exam.id,
            student_id=self.student_id,
            student_name=name,
            student_nim=self.identity.external_id,
            answers=graded,
            total_score=0 if disqualified else total_score,
            submitted_at=self.clock.now(),
            is_graded=not self.exam.has_essay,
            violation_count=self.violation_count
        )

    def _stop_components(self):
        self.timekeeper.stop()
        self.monitor.stop()
        self.heartbeat.stop()
        self.autosave.cancel()

    async def submit(self, reason: SubmitReason = SubmitReason.USER) -> Optional[Submission]:
        """
        Kumpulkan jawaban (paling banyak sekali per sesi)

        Returns:
            Submission, atau None jika sesi sudah terkunci / belum aktif
        """
        # Check-and-set tanpa await di antaranya
        if self.is_locked or self.state != SessionState.ACTIVE:
            return None
        self.is_locked = True

        self._set_state(SessionState.SUBMITTING)
        self._stop_components()
        submission = self._grade(reason)

        try:
            await self.gateway.upsert_submission(submission)
            self.is_persisted = True
        except PersistenceError as e:
            self.last_error = e
            logger.error("Gagal menyimpan submission %s: %s", submission.id, e)

        self.submission = submission
        if self.is_persisted:
            self.autosave.clear()
        else:
            self.autosave.flush(self._snapshot)
            self._warn("Gagal menyimpan jawaban ke server maupun penyimpanan lokal. "
                       "Draft jawaban tetap tersimpan di perangkat ini.")

        if reason == SubmitReason.VIOLATION:
            self._set_state(SessionState.DISQUALIFIED)
        else:
            self._set_state(SessionState.SUBMITTED)
        return submission

    def shutdown(self):
        """
        Hentikan semua task tanpa submit (halaman ditutup / sesi ditinggalkan).
        Draft tetap disimpan untuk recovery.
        """
        was_active = self.accepts_mutation()
        self.timekeeper.stop()
        self.monitor.stop()
        self.heartbeat.stop()
        if was_active and self.autosave.is_pending:
            self.autosave.cancel()
            self.autosave.flush(self._snapshot)
