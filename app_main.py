"""Application entry point for the ArenaQt host console."""

from __future__ import annotations

import asyncio
import socket
import sys

from PySide6.QtWidgets import QApplication

from arena_app.constants.game_constants import BOOTSTRAP_ADMIN_CODE, BOOTSTRAP_ADMIN_NAME
from arena_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from arena_app.core.arena_manager import ArenaManager
from arena_app.server.api_server import start_api_server
from arena_app.ui.admin_main_window import AdminMainWindow
from arena_app.utils.logging_config import configure_logging


def _determine_player_url(port: int) -> str:
    """Best-effort determination of the local IP for the player-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, seed the host account, start the API server and launch the console."""
    logger = configure_logging()
    logger.info("Starting ArenaQt...")

    arena_manager = ArenaManager()
    host = asyncio.run(arena_manager.ensure_admin(BOOTSTRAP_ADMIN_NAME, BOOTSTRAP_ADMIN_CODE))
    logger.info("Host account '%s' ready", host.display_name)

    start_api_server(arena_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    player_url = _determine_player_url(DEFAULT_PORT)
    logger.info("Player page available at %s", player_url)

    app = QApplication(sys.argv)
    window = AdminMainWindow(arena_manager=arena_manager, admin_id=host.id, player_url=player_url)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
