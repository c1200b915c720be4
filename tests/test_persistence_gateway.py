"""
Tests untuk PersistenceGateway: failover sticky dari remote ke local store.
"""
from unittest.mock import AsyncMock, Mock

import pytest

from ujian.errors import TransportError, AuthorizationError, StorageError, CommitFailure, PersistenceError
from ujian.persistence.gateway import PersistenceGateway, PersistenceMode
from ujian.persistence.stores import RecordKind
from ujian.session.models import LiveSessionRecord, Submission


def make_live_record(clock, violation_count=0, student_id="student-1"):
    return LiveSessionRecord("exam-bio", student_id, "Budi", clock.now(), clock.now(), violation_count)


def make_submission(clock, student_id="student-1", total=10):
    return Submission("exam-bio", student_id, "Budi", "1900123", [], total, clock.now())


class TestRemoteMode:
    """Operasi normal memakai primary store."""

    @pytest.mark.asyncio
    async def test_upsert_goes_to_primary(self, gateway, primary, db_manager, clock):
        await gateway.upsert_live_session(make_live_record(clock))

        assert gateway.mode == PersistenceMode.REMOTE
        assert primary.records['sessions']['exam-bio_student-1']['studentName'] == "Budi"
        assert db_manager.get_record('sessions', 'exam-bio_student-1') is None

    @pytest.mark.asyncio
    async def test_live_session_upsert_replaces_previous(self, gateway, primary, clock):
        await gateway.upsert_live_session(make_live_record(clock, violation_count=0))
        clock.advance(2)
        await gateway.upsert_live_session(make_live_record(clock, violation_count=1))

        assert len(primary.records['sessions']) == 1
        assert primary.records['sessions']['exam-bio_student-1']['violationCount'] == 1

    @pytest.mark.asyncio
    async def test_submission_uses_deterministic_id(self, gateway, primary, clock):
        await gateway.upsert_submission(make_submission(clock, total=5))
        await gateway.upsert_submission(make_submission(clock, total=7))

        assert list(primary.records['submissions']) == ['exam-bio_student-1']
        stored = await gateway.get_submission("exam-bio", "student-1")
        assert stored.total_score == 7

    @pytest.mark.asyncio
    async def test_exam_records_are_read_only(self, gateway):
        with pytest.raises(ValueError):
            await gateway.upsert(RecordKind.EXAM, "exam-bio", {'id': 'exam-bio'})
        with pytest.raises(ValueError):
            await gateway.delete(RecordKind.EXAM, "exam-bio")


class TestStickyFailover:
    """Setelah primary gagal sekali, semua operasi memakai local store."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        TransportError("network unreachable"),
        AuthorizationError("permission-denied"),
    ])
    async def test_failover_retries_on_local(self, gateway, primary, db_manager, clock, error):
        primary.fail_with = error

        await gateway.upsert_live_session(make_live_record(clock))

        assert gateway.mode == PersistenceMode.LOCAL
        assert gateway.failover_reason is error
        assert db_manager.get_record('sessions', 'exam-bio_student-1')['studentName'] == "Budi"

    @pytest.mark.asyncio
    async def test_no_remote_calls_after_failover(self, gateway, primary, db_manager, clock):
        primary.fail_with = TransportError("offline")
        await gateway.upsert_live_session(make_live_record(clock))
        assert len(primary.calls) == 1

        # Primary pulih, tapi gateway tidak kembali ke remote
        primary.fail_with = None
        await gateway.upsert_live_session(make_live_record(clock, violation_count=2))
        await gateway.upsert_submission(make_submission(clock))
        await gateway.get_submissions(exam_id="exam-bio")

        assert len(primary.calls) == 1
        assert gateway.mode == PersistenceMode.LOCAL
        assert db_manager.get_record('submissions', 'exam-bio_student-1')['totalScore'] == 10

    @pytest.mark.asyncio
    async def test_prior_remote_state_not_consulted(self, gateway, primary, clock):
        await gateway.upsert_submission(make_submission(clock))
        primary.fail_with = TransportError("offline")

        assert await gateway.get_submission("exam-bio", "student-1") is None

    @pytest.mark.asyncio
    async def test_mode_change_is_observable(self, gateway, primary, clock):
        listener = Mock()
        gateway.add_mode_listener(listener)
        primary.fail_with = TransportError("offline")

        await gateway.upsert_live_session(make_live_record(clock))
        await gateway.upsert_live_session(make_live_record(clock))

        listener.assert_called_once_with(PersistenceMode.REMOTE, PersistenceMode.LOCAL, primary.fail_with)

    @pytest.mark.asyncio
    async def test_other_errors_do_not_trigger_failover(self, gateway, primary, clock):
        primary.fail_with = PersistenceError("invalid-request: bad payload")

        with pytest.raises(PersistenceError):
            await gateway.upsert_live_session(make_live_record(clock))
        assert gateway.mode == PersistenceMode.REMOTE

    @pytest.mark.asyncio
    async def test_commit_failure_when_both_stores_fail(self, gateway, primary, local_store, clock):
        primary.fail_with = TransportError("offline")
        local_store.upsert = AsyncMock(side_effect=StorageError("disk full"))

        with pytest.raises(CommitFailure) as exc_info:
            await gateway.upsert_submission(make_submission(clock))
        assert isinstance(exc_info.value.cause, StorageError)


class TestLocalOnly:

    @pytest.mark.asyncio
    async def test_gateway_without_primary_starts_local(self, local_store, db_manager, clock):
        gateway = PersistenceGateway(None, local_store)

        await gateway.upsert_live_session(make_live_record(clock))

        assert gateway.mode == PersistenceMode.LOCAL
        assert len(await gateway.get_live_sessions("exam-bio")) == 1

    @pytest.mark.asyncio
    async def test_find_exam_by_access_code(self, local_store, db_manager, sample_exam):
        db_manager.save_exam(sample_exam.to_dict())
        gateway = PersistenceGateway(None, local_store)

        exam = await gateway.find_exam_by_access_code("  bio123 ")

        assert exam.id == sample_exam.id
        assert [q.id for q in exam.questions] == ["q1", "q2", "q3"]
        assert await gateway.find_exam_by_access_code("") is None
