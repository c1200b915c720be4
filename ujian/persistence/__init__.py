from .stores import RecordKind, RecordStore, LocalStore
from .gateway import PersistenceGateway, PersistenceMode

__all__ = [
    'RecordKind',
    'RecordStore',
    'LocalStore',
    'PersistenceGateway',
    'PersistenceMode'
]
