"""
Protocol untuk komunikasi antara runtime sesi dan remote record server
"""
from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import json
import uuid


class MessageType(Enum):
    """Jenis pesan"""
    # Client -> Server
    REQUEST = "request"
    
    # Server -> Client
    RESPONSE = "response"
    ERROR = "error"
    
    # Bidirectional
    PING = "ping"
    PONG = "pong"


class ErrorCode(Enum):
    """Kode error dari server"""
    PERMISSION_DENIED = "permission-denied"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not-found"
    INVALID_REQUEST = "invalid-request"


class Operation(Enum):
    """Operasi record store"""
    GET = "get"
    GET_BY_ID = "get_by_id"
    UPSERT = "upsert"
    DELETE = "delete"


class Message:
    """Pesan untuk komunikasi"""
    
    def __init__(self, msg_type: MessageType, data: Dict[str, Any] = None,
                 request_id: str = None, timestamp: datetime = None):
        self.type = msg_type
        self.data = data or {}
        self.request_id = request_id or uuid.uuid4().hex
        self.timestamp = timestamp or datetime.now(timezone.utc)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary"""
        return {
            'type': self.type.value,
            'data': self.data,
            'request_id': self.request_id,
            'timestamp': self.timestamp.isoformat()
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        """Create message from dictionary"""
        timestamp = data.get('timestamp')
        return cls(
            msg_type=MessageType(data['type']),
            data=data.get('data', {}),
            request_id=data.get('request_id'),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else None
        )
    
    def to_json(self) -> str:
        """Convert message to JSON string"""
        return json.dumps(self.to_dict(), ensure_ascii=False)
    
    @classmethod
    def from_json(cls, json_str: str) -> 'Message':
        """Create message from JSON string"""
        return cls.from_dict(json.loads(json_str))
    
    @classmethod
    def request(cls, operation: Operation, kind: str, record_id: str = None,
                filters: Dict[str, Any] = None, record: Dict[str, Any] = None,
                token: Optional[str] = None) -> 'Message':
        """Buat pesan request untuk record store"""
        data = {'op': operation.value, 'kind': kind}
        if record_id is not None:
            data['id'] = record_id
        if filters:
            data['filters'] = filters
        if record is not None:
            data['record'] = record
        if token:
            data['token'] = token
        return cls(MessageType.REQUEST, data=data)
    
    @classmethod
    def response(cls, request_id: str, result: Any) -> 'Message':
        return cls(MessageType.RESPONSE, data={'result': result}, request_id=request_id)
    
    @classmethod
    def error(cls, request_id: str, code: ErrorCode, message: str) -> 'Message':
        return cls(MessageType.ERROR, data={'code': code.value, 'message': message},
                   request_id=request_id)
    
    def __repr__(self):
        return f"<Message(type={self.type.value}, request_id={self.request_id})>"
