"""
Utility untuk load konfigurasi
"""
import copy
import json
import os
import shutil
from typing import Dict, Any


DEFAULT_CONFIG: Dict[str, Any] = {
    'session': {
        'max_violations': 3,
        'tick_interval': 1.0,
        'heartbeat_interval': 2.0,
        'heartbeat_retries': 2,
        'heartbeat_backoff': 0.5,
        'autosave_delay': 1.0,
        'disqualified_tag': ' [DISKUALIFIKASI]',
    },
    'integrity': {
        'forbidden_keys': None,  # None = DEFAULT_FORBIDDEN_KEYS
        'require_fullscreen': True,
    },
    'remote_store': {
        'url': 'ws://localhost:8765',
        'auth_token': '',
        'timeout': 5.0,
    },
    'local_store': {
        'db_path': 'data/ujian.db',
    },
    'server': {
        'host': '0.0.0.0',
        'port': 8765,
        'auth_tokens': [],
        'db_path': 'data/server.db',
        'stale_after': 10.0,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Gabungkan override ke base secara rekursif (base tidak diubah)"""
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


class ConfigLoader:
    """Loader untuk file konfigurasi"""
    
    @staticmethod
    def load_config(config_path: str, template_path: str = None) -> Dict[str, Any]:
        """
        Load konfigurasi dari file
        
        Args:
            config_path: Path ke file config
            template_path: Path ke template (optional)
        
        Returns:
            Dict konfigurasi, digabung dengan DEFAULT_CONFIG
        """
        # Jika config tidak ada, salin dari template
        if not os.path.exists(config_path) and template_path and os.path.exists(template_path):
            directory = os.path.dirname(config_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            shutil.copy(template_path, config_path)
        
        loaded = {}
        if os.path.exists(config_path):
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        elif template_path and os.path.exists(template_path):
            with open(template_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        
        return merge_config(DEFAULT_CONFIG, loaded)
    
    @staticmethod
    def save_config(config_path: str, config: Dict[str, Any]):
        """Save konfigurasi ke file"""
        directory = os.path.dirname(config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
