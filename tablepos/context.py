"""Per-terminal context passed to every component instead of global state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from tablepos.billing import local_now_iso
from tablepos.constant import TABLES
from tablepos.documents import Document, table_from_document
from tablepos.masters import Catalog, load_catalog
from tablepos.models import Table
from tablepos.persistence import DocumentStore
from tablepos.pusher import InlinePusher, Pusher
from tablepos.sync import TableSession

logger = logging.getLogger(__name__)


@dataclass
class TerminalContext:
    """Everything one terminal needs; created at session start, closed at end."""

    terminal_id: str
    store: DocumentStore
    pusher: Pusher
    catalog: Catalog
    clock: Callable[[], str] = local_now_iso
    today: Callable[[], date] = date.today
    floor: dict[str, Table] = field(default_factory=dict)
    session: TableSession | None = None
    on_floor_change: Callable[[dict[str, Table]], None] | None = None
    _unsubscribe_floor: Callable[[], None] | None = None

    @classmethod
    def create(
        cls,
        terminal_id: str,
        store: DocumentStore,
        pusher: Pusher | None = None,
        clock: Callable[[], str] = local_now_iso,
        today: Callable[[], date] = date.today,
    ) -> TerminalContext:
        ctx = cls(
            terminal_id=terminal_id,
            store=store,
            pusher=pusher or InlinePusher(),
            catalog=load_catalog(store),
            clock=clock,
            today=today,
        )
        ctx._on_tables_snapshot(store.list_all(TABLES))
        ctx._unsubscribe_floor = store.subscribe(TABLES, ctx._on_tables_snapshot)
        logger.info("terminal_start terminal=%s tables=%d menu=%d", terminal_id, len(ctx.floor), len(ctx.catalog.menu))
        return ctx

    def reload_catalog(self) -> None:
        self.catalog = load_catalog(self.store)

    def open_table(self, table_id: str) -> TableSession:
        """Start a fresh Editable session; any previous session is ended first."""
        self.leave_table()
        session = TableSession(
            table_id,
            self.store,
            self.pusher,
            self.catalog,
            terminal_id=self.terminal_id,
            clock=self.clock,
            today=self.today,
        )
        session.start()
        self.session = session
        return session

    def leave_table(self) -> None:
        if self.session is None:
            return
        self.session.close()
        self.session = None

    def close(self) -> None:
        self.leave_table()
        if self._unsubscribe_floor is not None:
            self._unsubscribe_floor()
            self._unsubscribe_floor = None
        self.pusher.close()
        logger.info("terminal_stop terminal=%s", self.terminal_id)

    def _on_tables_snapshot(self, snapshot: list[Document]) -> None:
        self.floor = {doc["id"]: table_from_document(doc) for doc in snapshot}
        if self.on_floor_change is not None:
            self.on_floor_change(self.floor)
