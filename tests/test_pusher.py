"""
Tests for tablepos.pusher: fire-and-forget push executors.
"""

from tablepos.pusher import InlinePusher, ManualPusher, ThreadPusher


def _failing():
    raise RuntimeError("offline")


class TestInlinePusher:
    def test_runs_immediately(self):
        ran = []
        InlinePusher().submit("a", lambda: ran.append("a"))
        assert ran == ["a"]

    def test_failure_reported_not_raised(self):
        errors = []
        pusher = InlinePusher(on_error=lambda label, exc: errors.append((label, str(exc))))
        pusher.submit("order o1", _failing)
        assert errors == [("order o1", "offline")]

    def test_failure_without_handler_is_swallowed(self):
        InlinePusher().submit("x", _failing)


class TestManualPusher:
    def test_holds_until_flush_in_fifo_order(self):
        ran = []
        pusher = ManualPusher()
        for label in ("a", "b", "c"):
            pusher.submit(label, lambda label=label: ran.append(label))
        assert ran == []
        assert pusher.flush() == 3
        assert ran == ["a", "b", "c"]
        assert pusher.pending == []

    def test_failure_does_not_stop_queue(self):
        ran, errors = [], []
        pusher = ManualPusher(on_error=lambda label, exc: errors.append(label))
        pusher.submit("bad", _failing)
        pusher.submit("good", lambda: ran.append("good"))
        pusher.flush()
        assert errors == ["bad"]
        assert ran == ["good"]


class TestThreadPusher:
    def test_preserves_submission_order(self):
        ran = []
        pusher = ThreadPusher()
        try:
            for idx in range(50):
                pusher.submit(f"p{idx}", lambda idx=idx: ran.append(idx))
            pusher.join()
        finally:
            pusher.close()
        assert ran == list(range(50))

    def test_errors_reported_from_worker(self):
        errors = []
        pusher = ThreadPusher(on_error=lambda label, exc: errors.append(label))
        try:
            pusher.submit("bad", _failing)
            pusher.join()
        finally:
            pusher.close()
        assert errors == ["bad"]
