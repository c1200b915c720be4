"""
Tests untuk RemoteStore (client WebSocket) dan failover dengan remote yang tidak terjangkau
"""
import pytest

from ujian.errors import AuthorizationError, PersistenceError, TransportError
from ujian.networking.client import RemoteStore
from ujian.networking.protocol import ErrorCode, Message, MessageType
from ujian.networking.server import RecordServer
from ujian.persistence.gateway import PersistenceGateway, PersistenceMode
from ujian.persistence.stores import RecordKind
from ujian.session.models import LiveSessionRecord


class LoopbackWebSocket:
    """WebSocket palsu yang meneruskan pesan langsung ke RecordServer.handle_message"""

    def __init__(self, server, noise=None):
        self.server = server
        self.inbox = list(noise or [])
        self.closed = False

    async def send(self, raw):
        reply = self.server.handle_message(Message.from_json(raw))
        self.inbox.append(reply.to_json())

    async def recv(self):
        return self.inbox.pop(0)

    async def close(self):
        self.closed = True


def connected_store(server, auth_token=None, noise=None):
    store = RemoteStore("ws://record-server:8765", auth_token=auth_token, timeout=1.0)
    store.websocket = LoopbackWebSocket(server, noise)
    store.is_connected = True
    return store


class TestRemoteStore:

    @pytest.mark.asyncio
    async def test_operations_through_server(self, db_manager, sample_exam):
        db_manager.save_exam(sample_exam.to_dict())
        store = connected_store(RecordServer(db_manager))

        await store.upsert(RecordKind.SUBMISSION, 'exam-bio_s1', {'examId': 'exam-bio', 'studentId': 's1'})

        assert await store.get_by_id(RecordKind.SUBMISSION, 'exam-bio_s1') == {'examId': 'exam-bio',
                                                                               'studentId': 's1'}
        assert len(await store.get(RecordKind.EXAM, {'accessCode': 'BIO123'})) == 1
        assert await store.delete(RecordKind.SUBMISSION, 'exam-bio_s1') is True
        assert store.request_count == 4

    @pytest.mark.asyncio
    async def test_unrelated_replies_are_skipped(self, db_manager):
        stray = Message.response("request-lama", "basi").to_json()
        store = connected_store(RecordServer(db_manager), noise=[stray])

        assert await store.get(RecordKind.LIVE_SESSION) == []

    @pytest.mark.asyncio
    async def test_permission_denied_maps_to_authorization_error(self, db_manager):
        store = connected_store(RecordServer(db_manager, auth_tokens=["rahasia"]), auth_token="salah")

        with pytest.raises(AuthorizationError):
            await store.get(RecordKind.SUBMISSION)

    @pytest.mark.asyncio
    async def test_ping(self, db_manager):
        store = connected_store(RecordServer(db_manager))

        assert await store.ping() is True

    def test_error_mapping(self):
        assert isinstance(RemoteStore._error_from({'code': ErrorCode.PERMISSION_DENIED.value}),
                          AuthorizationError)
        assert isinstance(RemoteStore._error_from({'code': ErrorCode.UNAVAILABLE.value}), TransportError)
        error = RemoteStore._error_from({'code': ErrorCode.INVALID_REQUEST.value, 'message': 'x'})
        assert type(error) is PersistenceError

    @pytest.mark.asyncio
    async def test_unreachable_server_raises_transport_error(self):
        store = RemoteStore("ws://127.0.0.1:9", timeout=1.0)

        with pytest.raises(TransportError):
            await store.get(RecordKind.EXAM)
        assert store.is_connected is False
        assert await store.ping() is False


class TestGatewayWithRemote:

    @pytest.mark.asyncio
    async def test_unreachable_remote_fails_over_to_local(self, local_store, db_manager, clock):
        gateway = PersistenceGateway(RemoteStore("ws://127.0.0.1:9", timeout=1.0), local_store)
        record = LiveSessionRecord("exam-bio", "s1", "Budi", clock.now(), clock.now(), 1)

        await gateway.upsert_live_session(record)

        assert gateway.mode == PersistenceMode.LOCAL
        assert isinstance(gateway.failover_reason, TransportError)
        assert db_manager.get_record('sessions', 'exam-bio_s1')['violationCount'] == 1
