"""Fire-and-forget push executors.

Each terminal pushes through exactly one executor, so writes reach the store
in the order the local mutations happened. A failed push is logged and
handed to `on_error`; nothing is retried and local state is never rolled back.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger(__name__)

PushTask = Callable[[], None]
ErrorHandler = Callable[[str, Exception], None]


def _no_op_error(label: str, exc: Exception) -> None:
    return


class Pusher:
    def __init__(self, on_error: ErrorHandler | None = None) -> None:
        self.on_error = on_error or _no_op_error

    def submit(self, label: str, task: PushTask) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return

    def _run(self, label: str, task: PushTask) -> None:
        try:
            task()
        except Exception as exc:
            # Surfaced to the operator; the optimistic local state stays as is.
            logger.warning("push_failed label=%s error=%r", label, exc)
            self.on_error(label, exc)
            return
        logger.debug("push_ok label=%s", label)


class InlinePusher(Pusher):
    """Run each push immediately on the caller's thread."""

    def submit(self, label: str, task: PushTask) -> None:
        self._run(label, task)


class ManualPusher(Pusher):
    """Hold pushes until `flush()`; models writes still in flight."""

    def __init__(self, on_error: ErrorHandler | None = None) -> None:
        super().__init__(on_error)
        self.pending: list[tuple[str, PushTask]] = []

    def submit(self, label: str, task: PushTask) -> None:
        self.pending.append((label, task))

    def flush(self) -> int:
        flushed = 0
        while self.pending:
            label, task = self.pending.pop(0)
            self._run(label, task)
            flushed += 1
        return flushed


class ThreadPusher(Pusher):
    """Single background worker draining a FIFO queue."""

    _STOP = object()

    def __init__(self, on_error: ErrorHandler | None = None) -> None:
        super().__init__(on_error)
        self._queue: queue.Queue = queue.Queue()
        self._worker = threading.Thread(target=self._drain, name="tablepos-pusher", daemon=True)
        self._worker.start()

    def submit(self, label: str, task: PushTask) -> None:
        self._queue.put((label, task))

    def join(self) -> None:
        """Block until every submitted push has run."""
        self._queue.join()

    def close(self) -> None:
        self._queue.put(self._STOP)
        self._worker.join(timeout=5.0)

    def _drain(self) -> None:
        while True:
            entry = self._queue.get()
            try:
                if entry is self._STOP:
                    return
                label, task = entry
                self._run(label, task)
            finally:
                self._queue.task_done()
