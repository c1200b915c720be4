"""
Database manager untuk operasi database lokal (SQLite)
"""
import os
import json
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager
from .models import Base, ExamEntry, SubmissionEntry, LiveSessionEntry, AnswerDraftEntry
from ..session.models import parse_instant, composite_id
from datetime import datetime
from typing import Optional, List, Dict, Any


# Nama koleksi -> model tabel
RECORD_MODELS = {
    'exams': ExamEntry,
    'submissions': SubmissionEntry,
    'sessions': LiveSessionEntry,
}

# Field filter (camelCase) -> kolom tabel
FILTER_COLUMNS = {
    'examId': 'exam_id',
    'studentId': 'student_id',
    'accessCode': 'access_code',
    'isActive': 'is_active',
}


def _naive_utc(value) -> Optional[datetime]:
    dt = parse_instant(value)
    return dt.replace(tzinfo=None) if dt else None


class DatabaseManager:
    """Manager untuk operasi database"""

    def __init__(self, db_path: str = "data/ujian.db"):
        """
        Initialize database manager

        Args:
            db_path: Path ke file database SQLite
        """
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.db_path = db_path
        self.engine = create_engine(f'sqlite:///{db_path}', echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        # Create tables
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self):
        """Context manager untuk session database"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Tutup semua koneksi"""
        self.engine.dispose()

    @staticmethod
    def _model_for(kind: str):
        model = RECORD_MODELS.get(kind)
        if model is None:
            raise ValueError(f"Jenis record tidak dikenal: {kind}")
        return model

    @staticmethod
    def _apply_columns(entry, data: Dict[str, Any]):
        """Salin field yang diindeks dari payload ke kolom"""
        if isinstance(entry, ExamEntry):
            entry.access_code = (data.get('accessCode') or '').strip().upper()
            entry.is_active = bool(data.get('isActive', True))
            entry.start_time = _naive_utc(data.get('startTime'))
            entry.end_time = _naive_utc(data.get('endTime'))
        elif isinstance(entry, SubmissionEntry):
            entry.exam_id = data['examId']
            entry.student_id = data['studentId']
            entry.submitted_at = _naive_utc(data.get('submittedAt'))
        elif isinstance(entry, LiveSessionEntry):
            entry.exam_id = data['examId']
            entry.student_id = data['studentId']
            entry.last_heartbeat = _naive_utc(data.get('lastHeartbeat'))
        entry.payload = json.dumps(data, ensure_ascii=False)

    # Record Operations
    def upsert_record(self, kind: str, record_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert atau replace record berdasarkan ID (last write wins)"""
        model = self._model_for(kind)
        with self.get_session() as session:
            entry = session.get(model, record_id)
            if entry is None:
                entry = model(id=record_id)
                session.add(entry)
            self._apply_columns(entry, data)
        return data

    def get_record(self, kind: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Ambil record berdasarkan ID"""
        model = self._model_for(kind)
        with self.get_session() as session:
            entry = session.get(model, record_id)
            return json.loads(entry.payload) if entry else None

    def get_records(self, kind: str, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """Ambil semua record, opsional difilter"""
        model = self._model_for(kind)
        with self.get_session() as session:
            query = session.query(model)
            for key, value in (filters or {}).items():
                column = FILTER_COLUMNS.get(key)
                if column is None or not hasattr(model, column):
                    raise ValueError(f"Filter tidak didukung untuk {kind}: {key}")
                if column == 'access_code':
                    value = str(value).strip().upper()
                query = query.filter(getattr(model, column) == value)
            return [json.loads(entry.payload) for entry in query.order_by(model.id).all()]

    def delete_record(self, kind: str, record_id: str) -> bool:
        """Hapus record, return True jika ada yang dihapus"""
        model = self._model_for(kind)
        with self.get_session() as session:
            entry = session.get(model, record_id)
            if entry is None:
                return False
            session.delete(entry)
            return True

    # Exam Operations
    def save_exam(self, exam: Dict[str, Any]) -> Dict[str, Any]:
        """Simpan definisi ujian (dipakai oleh authoring / seeding)"""
        return self.upsert_record('exams', exam['id'], exam)

    # Draft Operations
    @staticmethod
    def draft_key(exam_id: str, student_id: str) -> str:
        return composite_id(exam_id, student_id)

    def save_draft(self, exam_id: str, student_id: str, data: Dict[str, Any]):
        """Simpan draft jawaban"""
        with self.get_session() as session:
            key = self.draft_key(exam_id, student_id)
            entry = session.get(AnswerDraftEntry, key)
            if entry is None:
                entry = AnswerDraftEntry(id=key, exam_id=exam_id, student_id=student_id)
                session.add(entry)
            entry.payload = json.dumps(data, ensure_ascii=False)
            entry.updated_at = datetime.utcnow()

    def load_draft(self, exam_id: str, student_id: str) -> Optional[Dict[str, Any]]:
        """Ambil draft jawaban"""
        with self.get_session() as session:
            entry = session.get(AnswerDraftEntry, self.draft_key(exam_id, student_id))
            return json.loads(entry.payload) if entry else None

    def delete_draft(self, exam_id: str, student_id: str) -> bool:
        """Hapus draft jawaban"""
        with self.get_session() as session:
            entry = session.get(AnswerDraftEntry, self.draft_key(exam_id, student_id))
            if entry is None:
                return False
            session.delete(entry)
            return True
