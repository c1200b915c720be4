"""
Interface record store dan adapter store lokal (SQLite)
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..database.database_manager import DatabaseManager
from ..errors import StorageError

logger = logging.getLogger(__name__)


class RecordKind(Enum):
    """Jenis entitas yang disimpan"""
    EXAM = "exams"
    SUBMISSION = "submissions"
    LIVE_SESSION = "sessions"


class RecordStore(ABC):
    """Store untuk exams, submissions, dan live sessions"""

    name = "store"

    @abstractmethod
    async def get(self, kind: RecordKind, filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        """Ambil semua record yang cocok dengan filter"""

    @abstractmethod
    async def get_by_id(self, kind: RecordKind, record_id: str) -> Optional[Dict[str, Any]]:
        """Ambil satu record"""

    @abstractmethod
    async def upsert(self, kind: RecordKind, record_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert atau replace record"""

    @abstractmethod
    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        """Hapus record"""


class LocalStore(RecordStore):
    """Fallback store di atas DatabaseManager"""

    name = "local"

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def get(self, kind, filters=None):
        try:
            return self.db_manager.get_records(kind.value, filters)
        except SQLAlchemyError as e:
            raise StorageError(f"Gagal membaca {kind.value} lokal: {e}") from e

    async def get_by_id(self, kind, record_id):
        try:
            return self.db_manager.get_record(kind.value, record_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Gagal membaca {kind.value}/{record_id} lokal: {e}") from e

    async def upsert(self, kind, record_id, record):
        try:
            return self.db_manager.upsert_record(kind.value, record_id, record)
        except SQLAlchemyError as e:
            raise StorageError(f"Gagal menyimpan {kind.value}/{record_id} lokal: {e}") from e

    async def delete(self, kind, record_id):
        try:
            return self.db_manager.delete_record(kind.value, record_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Gagal menghapus {kind.value}/{record_id} lokal: {e}") from e
