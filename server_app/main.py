"""
Main entry point untuk Record Server (primary remote store + monitoring)
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ujian.database.database_manager import DatabaseManager
from ujian.networking.server import RecordServer
from ujian.utils.config_loader import ConfigLoader
from ujian.utils.logging_config import configure_logging


def main():
    """Main function"""
    config = ConfigLoader.load_config(
        "config/session_config.json", "config/session_config_template.json"
    )
    logging_config = config.get('logging', {})
    logger = configure_logging(logging_config.get('level', 'INFO'), logging_config.get('file'))

    server_config = config.get('server', {})
    server = RecordServer(
        DatabaseManager(server_config.get('db_path', 'data/server.db')),
        host=server_config.get('host', '0.0.0.0'),
        port=server_config.get('port', 8765),
        auth_tokens=server_config.get('auth_tokens', []),
        stale_after=server_config.get('stale_after', 10.0)
    )
    logger.info("Record server berjalan di %s:%s", server.host, server.port)
    server.run()


if __name__ == "__main__":
    main()
