"""Shared document store adapters.

Both adapters upsert whole documents, strip unset fields before write and
hand subscribers the full collection whenever it changes. There are no
locks or transactions across documents; terminals reconcile on their own.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from tablepos.config import DB_PATH
from tablepos.documents import Document, strip_unset
from tablepos.errors import PersistenceError

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Document]], None]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """Subscription bookkeeping shared by the concrete stores."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[SnapshotCallback]] = {}
        self._subscribers_lock = threading.Lock()

    def put(self, collection: str, doc_id: str, document: Document) -> None:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Document | None:
        raise NotImplementedError

    def list_all(self, collection: str) -> list[Document]:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a snapshot callback and return the matching unsubscribe."""
        with self._subscribers_lock:
            self._subscribers.setdefault(collection, []).append(callback)

        def unsubscribe() -> None:
            with self._subscribers_lock:
                callbacks = self._subscribers.get(collection, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        with self._subscribers_lock:
            callbacks = list(self._subscribers.get(collection, []))
        if not callbacks:
            return
        snapshot = self.list_all(collection)
        for callback in callbacks:
            callback(copy.deepcopy(snapshot))


class MemoryDocumentStore(DocumentStore):
    """In-process store shared by simulated terminals.

    Subscribers are notified synchronously after every write, the writer
    included, so a terminal sees the echo of its own push.
    """

    def __init__(self) -> None:
        super().__init__()
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = threading.RLock()
        self._failures_pending = 0

    def fail_next(self, count: int = 1) -> None:
        """Make the next `count` writes raise PersistenceError."""
        self._failures_pending = count

    def _maybe_fail(self, op: str, collection: str, doc_id: str) -> None:
        if self._failures_pending <= 0:
            return
        self._failures_pending -= 1
        raise PersistenceError(f"{op} {collection}/{doc_id} failed: store unavailable")

    def put(self, collection: str, doc_id: str, document: Document) -> None:
        with self._lock:
            self._maybe_fail("put", collection, doc_id)
            self._collections.setdefault(collection, {})[doc_id] = strip_unset(copy.deepcopy(document))
        self._notify(collection)

    def get(self, collection: str, doc_id: str) -> Document | None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list_all(self, collection: str) -> list[Document]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()]

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._maybe_fail("delete", collection, doc_id)
            removed = self._collections.get(collection, {}).pop(doc_id, None)
        if removed is not None:
            self._notify(collection)


class SqliteDocumentStore(DocumentStore):
    """SQLite-backed store usable by terminals running as separate processes.

    Writes never notify directly. `poll()` compares per-collection revision
    counters and emits snapshots for every collection that moved, which is
    how each process observes the others (and its own echoes).
    """

    def __init__(self, db_path: str = DB_PATH) -> None:
        super().__init__()
        self.db_path = db_path
        self._seen_revisions: dict[str, int] = {}

    def _connect(self) -> sqlite3.Connection:
        db_file = Path(self.db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(db_file, timeout=5.0)

    def bootstrap_schema(self) -> None:
        """Create persistence schema if it does not already exist."""
        try:
            with self._connect() as conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        collection TEXT NOT NULL,
                        id TEXT NOT NULL,
                        body TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (collection, id)
                    );

                    CREATE TABLE IF NOT EXISTS revisions (
                        collection TEXT PRIMARY KEY,
                        revision INTEGER NOT NULL
                    );
                    """
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open store at {self.db_path}: {exc}") from exc

    def _bump_revision(self, conn: sqlite3.Connection, collection: str) -> None:
        conn.execute(
            """
            INSERT INTO revisions (collection, revision) VALUES (?, 1)
            ON CONFLICT(collection) DO UPDATE SET revision = revision + 1
            """,
            (collection,),
        )

    def put(self, collection: str, doc_id: str, document: Document) -> None:
        body = json.dumps(strip_unset(document), sort_keys=True)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO documents (collection, id, body, updated_at) VALUES (?, ?, ?, ?)
                    ON CONFLICT(collection, id) DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                    """,
                    (collection, doc_id, body, _utc_now_iso()),
                )
                self._bump_revision(conn, collection)
        except sqlite3.Error as exc:
            raise PersistenceError(f"put {collection}/{doc_id} failed: {exc}") from exc

    def get(self, collection: str, doc_id: str) -> Document | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND id = ?", (collection, doc_id)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"get {collection}/{doc_id} failed: {exc}") from exc
        return json.loads(row[0]) if row is not None else None

    def list_all(self, collection: str) -> list[Document]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? ORDER BY id", (collection,)
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"list {collection} failed: {exc}") from exc
        return [json.loads(row[0]) for row in rows]

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self._connect() as conn:
                cur = conn.execute("DELETE FROM documents WHERE collection = ? AND id = ?", (collection, doc_id))
                if cur.rowcount:
                    self._bump_revision(conn, collection)
        except sqlite3.Error as exc:
            raise PersistenceError(f"delete {collection}/{doc_id} failed: {exc}") from exc

    def poll(self) -> list[str]:
        """Emit snapshots for collections written since the last poll."""
        try:
            with self._connect() as conn:
                revisions = dict(conn.execute("SELECT collection, revision FROM revisions").fetchall())
        except sqlite3.Error as exc:
            raise PersistenceError(f"poll failed: {exc}") from exc

        changed = [
            collection
            for collection, revision in revisions.items()
            if self._seen_revisions.get(collection) != revision
        ]
        for collection in changed:
            self._seen_revisions[collection] = revisions[collection]
            logger.debug("poll collection=%s revision=%s", collection, revisions[collection])
            self._notify(collection)
        return changed
