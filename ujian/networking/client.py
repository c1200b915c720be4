"""
Client remote record store (WebSocket client)
"""
import asyncio
import logging
import uuid
import websockets
from typing import Optional, Dict, Any

from .protocol import Message, MessageType, ErrorCode, Operation
from ..errors import PersistenceError, TransportError, AuthorizationError
from ..persistence.stores import RecordStore

logger = logging.getLogger(__name__)


class RemoteStore(RecordStore):
    """Primary store yang diakses lewat RecordServer"""

    name = "remote"

    def __init__(self, server_url: str, auth_token: str = None,
                 timeout: float = 5.0, client_id: str = None):
        """
        Initialize client

        Args:
            server_url: URL server (ws://host:port)
            auth_token: Token akses (optional)
            timeout: Timeout per request (detik)
            client_id: ID koneksi (default: random)
        """
        self.server_url = server_url.rstrip('/')
        self.auth_token = auth_token
        self.timeout = timeout
        self.client_id = client_id or uuid.uuid4().hex
        self.websocket = None
        self.is_connected = False
        self.request_count = 0
        self._lock = asyncio.Lock()

    async def connect(self):
        """Connect to server"""
        uri = f"{self.server_url}/ws/{self.client_id}"
        self.websocket = await asyncio.wait_for(websockets.connect(uri), self.timeout)
        self.is_connected = True
        logger.info("Terhubung ke remote store %s", self.server_url)

    async def disconnect(self):
        """Disconnect from server"""
        self.is_connected = False
        websocket, self.websocket = self.websocket, None
        if websocket is not None:
            try:
                await websocket.close()
            except (OSError, websockets.exceptions.WebSocketException) as e:
                logger.debug("Gagal menutup koneksi: %s", e)

    async def _request(self, message: Message) -> Any:
        """Kirim request dan tunggu balasan dengan request_id yang sama"""
        async with self._lock:
            self.request_count += 1
            try:
                if not self.is_connected or self.websocket is None:
                    await self.connect()
                await asyncio.wait_for(self.websocket.send(message.to_json()), self.timeout)
                while True:
                    raw = await asyncio.wait_for(self.websocket.recv(), self.timeout)
                    reply = Message.from_json(raw)
                    if reply.request_id == message.request_id:
                        break
                    logger.debug("Mengabaikan balasan tak terduga: %s", reply)
            except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
                await self.disconnect()
                raise TransportError(f"Remote store tidak dapat dijangkau: {e}") from e
            except (ValueError, KeyError) as e:
                raise PersistenceError(f"Balasan remote store tidak valid: {e}") from e

        if reply.type == MessageType.ERROR:
            raise self._error_from(reply.data)
        return reply.data.get('result')

    @staticmethod
    def _error_from(data: Dict[str, Any]) -> PersistenceError:
        code = data.get('code')
        message = data.get('message', '')
        if code == ErrorCode.PERMISSION_DENIED.value:
            return AuthorizationError(message or "Permission denied")
        if code == ErrorCode.UNAVAILABLE.value:
            return TransportError(message or "Remote store unavailable")
        return PersistenceError(f"{code}: {message}")

    def _build(self, operation: Operation, kind, **kwargs) -> Message:
        return Message.request(operation, kind.value, token=self.auth_token, **kwargs)

    async def get(self, kind, filters=None):
        result = await self._request(self._build(Operation.GET, kind, filters=filters))
        return result or []

    async def get_by_id(self, kind, record_id):
        return await self._request(self._build(Operation.GET_BY_ID, kind, record_id=record_id))

    async def upsert(self, kind, record_id, record):
        return await self._request(
            self._build(Operation.UPSERT, kind, record_id=record_id, record=record)
        )

    async def delete(self, kind, record_id):
        return bool(await self._request(self._build(Operation.DELETE, kind, record_id=record_id)))

    async def ping(self) -> bool:
        """Cek koneksi ke server"""
        try:
            async with self._lock:
                if not self.is_connected or self.websocket is None:
                    await self.connect()
                message = Message(MessageType.PING)
                await asyncio.wait_for(self.websocket.send(message.to_json()), self.timeout)
                reply = Message.from_json(
                    await asyncio.wait_for(self.websocket.recv(), self.timeout)
                )
                return reply.type == MessageType.PONG
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            logger.warning("Ping ke remote store gagal: %s", e)
            await self.disconnect()
            return False
