from .signals import SignalType, Capability, NullCapability, CallbackCapability
from .monitor import IntegrityMonitor, ViolationEvent

__all__ = [
    'SignalType',
    'Capability',
    'NullCapability',
    'CallbackCapability',
    'IntegrityMonitor',
    'ViolationEvent'
]
