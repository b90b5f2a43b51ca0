"""Daily bill number allocation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from tablepos.config import BILL_NUMBER_WIDTH
from tablepos.models import Order


def local_day(timestamp: str) -> date | None:
    """Calendar day of an ISO timestamp in the terminal's local timezone."""
    try:
        parsed = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def local_now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def format_bill_number(value: int) -> str:
    return str(value).zfill(BILL_NUMBER_WIDTH)


def next_bill_number(orders: Iterable[Order], today: date | None = None) -> str:
    """Return max(today's numeric bill numbers) + 1, zero padded.

    This is a plain read-then-write scan with no shared counter: two
    terminals asking at the same moment can both get the same number.
    """
    today = today or date.today()
    highest = 0
    for order in orders:
        if not order.daily_bill_no or local_day(order.timestamp) != today:
            continue
        try:
            number = int(order.daily_bill_no)
        except ValueError:
            continue
        highest = max(highest, number)
    return format_bill_number(highest + 1)
