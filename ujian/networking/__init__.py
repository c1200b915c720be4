from .server import RecordServer
from .client import RemoteStore
from .protocol import Message, MessageType, ErrorCode, Operation

__all__ = [
    'RecordServer',
    'RemoteStore',
    'Message',
    'MessageType',
    'ErrorCode',
    'Operation'
]
