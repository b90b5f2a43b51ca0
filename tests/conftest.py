"""Shared fixtures: an in-memory store seeded with a tiny catalog and
terminal factories pinned to a fixed clock."""

from datetime import date

import pytest

from tablepos.constant import CAPTAINS, MENU, TABLES, TAXES
from tablepos.context import TerminalContext
from tablepos.persistence import MemoryDocumentStore
from tablepos.pusher import InlinePusher

TODAY = date(2026, 10, 19)
NOW = "2026-10-19T12:30:00"


def fixed_clock() -> str:
    return NOW


@pytest.fixture
def store():
    store = MemoryDocumentStore()
    for number in ("1", "5"):
        store.put(TABLES, f"T{number}", {"id": f"T{number}", "number": number, "status": "Available"})
    store.put(TAXES, "gst5", {"id": "gst5", "name": "GST 5%", "rate": "5"})
    store.put(TAXES, "exempt", {"id": "exempt", "name": "Exempt", "rate": "0"})
    store.put(
        MENU,
        "paneer",
        {"id": "paneer", "name": "Paneer", "price": "100", "groupId": "main", "taxId": "gst5", "foodType": "Veg"},
    )
    store.put(
        MENU,
        "lassi",
        {"id": "lassi", "name": "Sweet Lassi", "price": "45.50", "groupId": "drinks", "taxId": "exempt"},
    )
    store.put(CAPTAINS, "w1", {"id": "w1", "name": "Rahul"})
    store.put(CAPTAINS, "w2", {"id": "w2", "name": "Suresh"})
    return store


@pytest.fixture
def terminal(store):
    """Factory for terminals sharing the `store` fixture."""
    opened = []

    def factory(terminal_id: str, pusher=None) -> TerminalContext:
        ctx = TerminalContext.create(
            terminal_id,
            store,
            pusher or InlinePusher(),
            clock=fixed_clock,
            today=lambda: TODAY,
        )
        opened.append(ctx)
        return ctx

    yield factory
    for ctx in opened:
        ctx.close()
