"""
Tests untuk HeartbeatReporter.
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from ujian.errors import CommitFailure
from ujian.session.heartbeat import HeartbeatReporter
from ujian.session.models import LiveSessionRecord
from ujian.session.scheduler import Scheduler


@pytest.fixture
def record_source(clock):
    return lambda: LiveSessionRecord("exam-bio", "student-1", "Budi", clock.now(), clock.now(), 0)


class TestHeartbeatReporter:

    @pytest.mark.asyncio
    async def test_push_success_is_counted(self, record_source):
        gateway = Mock()
        gateway.upsert_live_session = AsyncMock()
        reporter = HeartbeatReporter(gateway, record_source, lambda: True, Scheduler())

        assert await reporter.push() is True

        assert reporter.sent_count == 1
        gateway.upsert_live_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failures_are_retried_then_reported(self, record_source):
        gateway = Mock()
        gateway.upsert_live_session = AsyncMock(side_effect=CommitFailure("offline"))
        on_failure = Mock()
        reporter = HeartbeatReporter(gateway, record_source, lambda: True, Scheduler(),
                                     max_retries=2, backoff=0)
        reporter.set_failure_callback(on_failure)

        assert await reporter.push() is False

        assert gateway.upsert_live_session.await_count == 3
        assert reporter.failed_count == 1
        assert reporter.sent_count == 0
        on_failure.assert_called_once_with(reporter.last_error)

    @pytest.mark.asyncio
    async def test_retry_recovers(self, record_source):
        gateway = Mock()
        gateway.upsert_live_session = AsyncMock(side_effect=[CommitFailure("offline"), None])
        reporter = HeartbeatReporter(gateway, record_source, lambda: True, Scheduler(),
                                     max_retries=1, backoff=0)

        assert await reporter.push() is True
        assert reporter.failed_count == 0

    @pytest.mark.asyncio
    async def test_no_push_when_inactive(self, record_source):
        gateway = Mock()
        gateway.upsert_live_session = AsyncMock()
        reporter = HeartbeatReporter(gateway, record_source, lambda: False, Scheduler())

        assert await reporter.push() is False
        gateway.upsert_live_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_locked_during_retry_stops_push(self, record_source):
        active = {'value': True}

        async def fail_and_lock(record):
            active['value'] = False
            raise CommitFailure("offline")

        gateway = Mock()
        gateway.upsert_live_session = AsyncMock(side_effect=fail_and_lock)
        reporter = HeartbeatReporter(gateway, record_source, lambda: active['value'], Scheduler(),
                                     max_retries=3, backoff=0)

        assert await reporter.push() is False
        assert gateway.upsert_live_session.await_count == 1

    @pytest.mark.asyncio
    async def test_periodic_start_pushes_immediately(self, record_source):
        gateway = Mock()
        gateway.upsert_live_session = AsyncMock()
        reporter = HeartbeatReporter(gateway, record_source, lambda: True, Scheduler(), interval=0.02)

        reporter.start()
        await asyncio.sleep(0.07)
        reporter.stop()

        assert reporter.sent_count >= 2
        assert reporter.is_running is False
