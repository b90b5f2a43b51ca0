"""Entry point for the table POS Textual app."""

from __future__ import annotations

import logging
from pathlib import Path

from tablepos.config import DB_PATH, DEBUG_LOG_PATH, TERMINAL_ID
from tablepos.context import TerminalContext
from tablepos.masters import seed_defaults
from tablepos.persistence import SqliteDocumentStore
from tablepos.pos_app import PosApp
from tablepos.pusher import ThreadPusher


def configure_logging(path: str = DEBUG_LOG_PATH) -> None:
    """Send all log records to the debug file; the terminal belongs to Textual."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    store = SqliteDocumentStore(DB_PATH)
    store.bootstrap_schema()
    seed_defaults(store)
    ctx = TerminalContext.create(TERMINAL_ID, store, ThreadPusher())
    try:
        PosApp(ctx).run()
    finally:
        ctx.close()


if __name__ == "__main__":
    main()
