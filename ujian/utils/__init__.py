from .config_loader import ConfigLoader, DEFAULT_CONFIG, merge_config
from .logging_config import configure_logging

__all__ = [
    'ConfigLoader',
    'DEFAULT_CONFIG',
    'merge_config',
    'configure_logging'
]
