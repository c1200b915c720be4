"""
Persistence gateway dengan sticky failover dari remote store ke local store
"""
import logging
from enum import Enum
from typing import Callable, Dict, Any, List, Optional

from .stores import RecordKind, RecordStore, LocalStore
from ..errors import (PersistenceError, TransportError, AuthorizationError,
                      CommitFailure)
from ..session.models import ExamDefinition, Submission, LiveSessionRecord

logger = logging.getLogger(__name__)


class PersistenceMode(Enum):
    """Backend yang sedang dipakai gateway"""
    REMOTE = "remote"
    LOCAL = "local"


class PersistenceGateway:
    """
    Gateway read/write untuk exams, submissions, dan live sessions.

    Semua operasi mencoba primary (remote) lebih dulu. Begitu primary
    mengembalikan TransportError atau AuthorizationError, mode berpindah ke
    LOCAL untuk sisa umur proses dan operasi yang gagal diulang di local
    store. Tidak ada perpindahan kembali ke REMOTE.
    """

    def __init__(self, primary: Optional[RecordStore], fallback: RecordStore,
                 mode: PersistenceMode = PersistenceMode.REMOTE):
        """
        Initialize gateway

        Args:
            primary: Remote store (None = langsung mode lokal)
            fallback: Local store
            mode: Mode awal
        """
        self.primary = primary
        self.fallback = fallback
        self._mode = mode if primary is not None else PersistenceMode.LOCAL
        self.failover_reason: Optional[Exception] = None
        self._mode_listeners: List[Callable] = []

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'PersistenceGateway':
        """Buat gateway dari konfigurasi (section remote_store dan local_store)"""
        from ..database.database_manager import DatabaseManager
        from ..networking.client import RemoteStore

        local_config = config.get('local_store', {})
        fallback = LocalStore(DatabaseManager(local_config.get('db_path', 'data/ujian.db')))

        remote_config = config.get('remote_store', {})
        primary = None
        if remote_config.get('url'):
            primary = RemoteStore(
                remote_config['url'],
                auth_token=remote_config.get('auth_token') or None,
                timeout=remote_config.get('timeout', 5.0)
            )
        return cls(primary, fallback)

    @property
    def mode(self) -> PersistenceMode:
        return self._mode

    def add_mode_listener(self, callback: Callable):
        """Daftarkan callback(old_mode, new_mode, reason) untuk perubahan mode"""
        self._mode_listeners.append(callback)

    def _switch_to_local(self, reason: Exception):
        if self._mode == PersistenceMode.LOCAL:
            return
        old_mode = self._mode
        self._mode = PersistenceMode.LOCAL
        self.failover_reason = reason
        logger.warning("Remote store gagal (%s), beralih permanen ke local store", reason)
        for callback in list(self._mode_listeners):
            try:
                callback(old_mode, self._mode, reason)
            except Exception:
                logger.exception("Mode listener gagal")

    async def _execute(self, op_name: str, call: Callable):
        """Jalankan operasi di store aktif, failover jika primary gagal"""
        if self._mode == PersistenceMode.REMOTE:
            try:
                return await call(self.primary)
            except (TransportError, AuthorizationError) as e:
                self._switch_to_local(e)

        try:
            return await call(self.fallback)
        except PersistenceError as e:
            logger.error("Operasi %s gagal di local store: %s", op_name, e)
            raise CommitFailure(f"Operasi {op_name} gagal di semua store", cause=e) from e

    # Generic operations
    async def get(self, kind: RecordKind, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        return await self._execute(f"get {kind.value}", lambda store: store.get(kind, filters))

    async def get_by_id(self, kind: RecordKind, record_id: str) -> Optional[Dict[str, Any]]:
        return await self._execute(
            f"get {kind.value}/{record_id}",
            lambda store: store.get_by_id(kind, record_id)
        )

    async def upsert(self, kind: RecordKind, record_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        if kind == RecordKind.EXAM:
            raise ValueError("Definisi ujian bersifat read-only di runtime sesi")
        return await self._execute(
            f"upsert {kind.value}/{record_id}",
            lambda store: store.upsert(kind, record_id, record)
        )

    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        if kind == RecordKind.EXAM:
            raise ValueError("Definisi ujian bersifat read-only di runtime sesi")
        return await self._execute(
            f"delete {kind.value}/{record_id}",
            lambda store: store.delete(kind, record_id)
        )

    # Exams
    async def get_exam(self, exam_id: str) -> Optional[ExamDefinition]:
        data = await self.get_by_id(RecordKind.EXAM, exam_id)
        return ExamDefinition.from_dict(data) if data else None

    async def find_exam_by_access_code(self, access_code: str) -> Optional[ExamDefinition]:
        code = (access_code or '').strip().upper()
        if not code:
            return None
        exams = await self.get(RecordKind.EXAM, {'accessCode': code})
        return ExamDefinition.from_dict(exams[0]) if exams else None

    # Submissions
    async def upsert_submission(self, submission: Submission) -> Submission:
        await self.upsert(RecordKind.SUBMISSION, submission.id, submission.to_dict())
        return submission

    async def get_submission(self, exam_id: str, student_id: str) -> Optional[Submission]:
        data = await self.get_by_id(RecordKind.SUBMISSION, Submission.make_id(exam_id, student_id))
        return Submission.from_dict(data) if data else None

    async def get_submissions(self, exam_id: str = None, student_id: str = None) -> List[Submission]:
        filters = {}
        if exam_id:
            filters['examId'] = exam_id
        if student_id:
            filters['studentId'] = student_id
        return [Submission.from_dict(d) for d in await self.get(RecordKind.SUBMISSION, filters)]

    # Live sessions
    async def upsert_live_session(self, record: LiveSessionRecord) -> LiveSessionRecord:
        await self.upsert(RecordKind.LIVE_SESSION, record.id, record.to_dict())
        return record

    async def get_live_sessions(self, exam_id: str) -> List[LiveSessionRecord]:
        records = await self.get(RecordKind.LIVE_SESSION, {'examId': exam_id})
        return [LiveSessionRecord.from_dict(d) for d in records]
