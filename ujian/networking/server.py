"""
Server remote record store (FastAPI + WebSocket)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Callable, Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .protocol import Message, MessageType, ErrorCode, Operation
from ..database.database_manager import DatabaseManager, RECORD_MODELS
from ..session.models import parse_instant

logger = logging.getLogger(__name__)

READ_ONLY_KINDS = {'exams'}


class RequestError(Exception):
    """Request ditolak dengan kode error protokol"""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code


class RecordServer:
    """Server untuk record store utama dan monitoring live session"""

    def __init__(self, db_manager: DatabaseManager, host: str = "0.0.0.0", port: int = 8765,
                 auth_tokens: List[str] = None, stale_after: float = 10.0):
        """
        Initialize server

        Args:
            db_manager: Database penyimpan record
            host: Host address
            port: Port number
            auth_tokens: Token yang diizinkan (kosong = semua diizinkan)
            stale_after: Detik tanpa heartbeat sebelum peserta dianggap offline
        """
        self.db_manager = db_manager
        self.host = host
        self.port = port
        self.auth_tokens = set(auth_tokens or [])
        self.stale_after = stale_after
        self.app = FastAPI()
        self.connected_clients: Dict[str, WebSocket] = {}

        # Setup CORS
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Setup routes
        self._setup_routes()

        # Operation handlers
        self.operation_handlers: Dict[Operation, Callable] = {}
        self.register_handler(Operation.GET, self._handle_get)
        self.register_handler(Operation.GET_BY_ID, self._handle_get_by_id)
        self.register_handler(Operation.UPSERT, self._handle_upsert)
        self.register_handler(Operation.DELETE, self._handle_delete)

    def _setup_routes(self):
        """Setup FastAPI routes"""

        @self.app.get("/")
        async def root():
            return {"status": "Record Server", "connected_clients": len(self.connected_clients)}

        @self.app.get("/exams/{exam_id}/sessions")
        async def get_live_sessions(exam_id: str):
            return {"sessions": self.get_live_sessions(exam_id)}

        @self.app.get("/exams/{exam_id}/submissions")
        async def get_submissions(exam_id: str):
            return {"submissions": self.db_manager.get_records('submissions', {'examId': exam_id})}

        @self.app.websocket("/ws/{client_id}")
        async def websocket_endpoint(websocket: WebSocket, client_id: str):
            await websocket.accept()
            self.connected_clients[client_id] = websocket

            try:
                while True:
                    data = await websocket.receive_text()
                    reply = self.handle_message(Message.from_json(data))
                    await websocket.send_text(reply.to_json())
            except WebSocketDisconnect:
                self._disconnect_client(client_id)
            except Exception:
                logger.exception("Error in websocket %s", client_id)
                self._disconnect_client(client_id)

    def _disconnect_client(self, client_id: str):
        """Handle client disconnect"""
        self.connected_clients.pop(client_id, None)

    def register_handler(self, operation: Operation, handler: Callable):
        """Register operation handler"""
        self.operation_handlers[operation] = handler

    def handle_message(self, message: Message) -> Message:
        """Proses satu pesan dan kembalikan balasannya"""
        if message.type == MessageType.PING:
            return Message(MessageType.PONG, request_id=message.request_id)
        if message.type != MessageType.REQUEST:
            return Message.error(message.request_id, ErrorCode.INVALID_REQUEST,
                                 f"Jenis pesan tidak didukung: {message.type.value}")

        data = message.data
        try:
            self._authorize(data.get('token'))
            operation = self._parse_operation(data.get('op'))
            kind = data.get('kind')
            if kind not in RECORD_MODELS:
                raise RequestError(ErrorCode.INVALID_REQUEST, f"Koleksi tidak dikenal: {kind}")
            result = self.operation_handlers[operation](kind, data)
        except RequestError as e:
            return Message.error(message.request_id, e.code, str(e))
        except SQLAlchemyError as e:
            logger.error("Database error: %s", e)
            return Message.error(message.request_id, ErrorCode.UNAVAILABLE, "Database tidak tersedia")
        except (KeyError, ValueError) as e:
            return Message.error(message.request_id, ErrorCode.INVALID_REQUEST, str(e))
        return Message.response(message.request_id, result)

    def _authorize(self, token: str):
        if self.auth_tokens and token not in self.auth_tokens:
            raise RequestError(ErrorCode.PERMISSION_DENIED, "Token tidak diizinkan")

    @staticmethod
    def _parse_operation(value: str) -> Operation:
        try:
            return Operation(value)
        except ValueError:
            raise RequestError(ErrorCode.INVALID_REQUEST, f"Operasi tidak dikenal: {value}")

    @staticmethod
    def _require_writable(kind: str):
        if kind in READ_ONLY_KINDS:
            raise RequestError(ErrorCode.PERMISSION_DENIED, f"Koleksi {kind} read-only")

    def _handle_get(self, kind: str, data: Dict[str, Any]):
        return self.db_manager.get_records(kind, data.get('filters'))

    def _handle_get_by_id(self, kind: str, data: Dict[str, Any]):
        return self.db_manager.get_record(kind, data['id'])

    def _handle_upsert(self, kind: str, data: Dict[str, Any]):
        self._require_writable(kind)
        return self.db_manager.upsert_record(kind, data['id'], data['record'])

    def _handle_delete(self, kind: str, data: Dict[str, Any]):
        self._require_writable(kind)
        return self.db_manager.delete_record(kind, data['id'])

    def get_live_sessions(self, exam_id: str, now: datetime = None) -> List[Dict[str, Any]]:
        """
        Live session untuk monitoring

        Peserta yang sudah memiliki submission tidak ditampilkan lagi.
        """
        now = now or datetime.now(timezone.utc)
        submitted = {s['studentId'] for s in self.db_manager.get_records('submissions', {'examId': exam_id})}
        threshold = timedelta(seconds=self.stale_after)

        sessions = []
        for record in self.db_manager.get_records('sessions', {'examId': exam_id}):
            if record['studentId'] in submitted:
                continue
            last_heartbeat = parse_instant(record.get('lastHeartbeat'))
            record['isOnline'] = bool(last_heartbeat and now - last_heartbeat <= threshold)
            sessions.append(record)
        return sessions

    def run(self):
        """Run server (blocking)"""
        import uvicorn
        uvicorn.run(self.app, host=self.host, port=self.port)

    async def start(self):
        """Start server (async)"""
        import uvicorn
        config = uvicorn.Config(self.app, host=self.host, port=self.port)
        server = uvicorn.Server(config)
        await server.serve()
