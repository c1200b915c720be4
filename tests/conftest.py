"""
Pytest configuration dan fixture bersama
"""
import asyncio
import os
import random
import sys
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ujian.database.database_manager import DatabaseManager
from ujian.persistence.gateway import PersistenceGateway
from ujian.persistence.stores import RecordStore, LocalStore
from ujian.session.controller import SessionController
from ujian.session.models import ExamDefinition, Question, QuestionType


class FakeClock:
    """Clock yang hanya maju jika digeser manual"""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2026, 3, 2, 8, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float):
        self.current += timedelta(seconds=seconds)


class ScriptedStore(RecordStore):
    """Primary store in-memory; setiap call dicatat, bisa dipaksa gagal"""

    name = "scripted"

    def __init__(self):
        self.records = {}
        self.calls = []
        self.fail_with = None

    def _check(self, op, kind, record_id=None):
        self.calls.append((op, kind.value, record_id))
        if self.fail_with is not None:
            raise self.fail_with

    def calls_for(self, op, kind_value):
        return [c for c in self.calls if c[0] == op and c[1] == kind_value]

    async def get(self, kind, filters=None):
        self._check('get', kind)
        rows = self.records.get(kind.value, {}).values()
        return [r for r in rows if all(r.get(k) == v for k, v in (filters or {}).items())]

    async def get_by_id(self, kind, record_id):
        self._check('get_by_id', kind, record_id)
        return self.records.get(kind.value, {}).get(record_id)

    async def upsert(self, kind, record_id, record):
        self._check('upsert', kind, record_id)
        self.records.setdefault(kind.value, {})[record_id] = record
        return record

    async def delete(self, kind, record_id):
        self._check('delete', kind, record_id)
        return self.records.get(kind.value, {}).pop(record_id, None) is not None


FAST_CONFIG = {
    'session': {
        'max_violations': 3,
        'tick_interval': 60,
        'heartbeat_interval': 60,
        'heartbeat_retries': 0,
        'heartbeat_backoff': 0,
        'autosave_delay': 60,
    },
    'integrity': {
        'require_fullscreen': True,
    },
}


def build_exam(clock, exam_id="exam-bio", questions=None, start_offset=-600,
               end_offset=3600, **kwargs) -> ExamDefinition:
    if questions is None:
        questions = [
            Question("q1", QuestionType.MULTIPLE_CHOICE, 5, text="Organel penghasil energi?",
                     options=["Ribosom", "Mitokondria", "Lisosom"], correct_option_index=1),
            Question("q2", QuestionType.MULTIPLE_CHOICE, 5, text="Basa nitrogen RNA?",
                     options=["Timin", "Sitosin", "Urasil", "Adenin"], correct_option_index=2),
            Question("q3", QuestionType.ESSAY, 10, text="Jelaskan proses transkripsi.",
                     reference_answer="DNA disalin menjadi mRNA oleh RNA polimerase."),
        ]
    return ExamDefinition(
        exam_id, questions,
        start_time=clock.now() + timedelta(seconds=start_offset),
        end_time=clock.now() + timedelta(seconds=end_offset),
        title=kwargs.get('title', 'UTS Biologi Sel'),
        course_name=kwargs.get('course_name', 'Biologi Sel'),
        access_code=kwargs.get('access_code', 'BIO123'),
        is_active=kwargs.get('is_active', True)
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(str(tmp_path / "data" / "ujian.db"))
    yield manager
    manager.close()


@pytest.fixture
def local_store(db_manager):
    return LocalStore(db_manager)


@pytest.fixture
def primary():
    return ScriptedStore()


@pytest.fixture
def gateway(primary, local_store):
    return PersistenceGateway(primary, local_store)


@pytest.fixture
def sample_exam(clock):
    return build_exam(clock)


@pytest_asyncio.fixture
async def make_session(sample_exam, gateway, db_manager, clock):
    """Factory SessionController; semua task dihentikan saat teardown"""
    sessions = []

    def _make(exam=None, student_id="student-1", seed=7, config=None, **kwargs):
        session = SessionController(
            exam or sample_exam, student_id, gateway, db_manager,
            config=config or FAST_CONFIG, clock=clock, rng=random.Random(seed), **kwargs
        )
        sessions.append(session)
        return session

    yield _make

    for session in sessions:
        session.shutdown()
        await session.scheduler.drain()
    await asyncio.sleep(0)
