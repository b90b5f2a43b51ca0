"""Kitchen order ticket issuance and reprints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Iterable
from uuid import uuid4

from tablepos.billing import local_now_iso, next_bill_number
from tablepos.models import KOTRecord, Order, OrderItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketRenderRequest:
    """What the print collaborator needs to lay out one kitchen ticket."""

    kot_no: int
    table_id: str
    captain_name: str
    items: tuple[OrderItem, ...]
    timestamp: str
    reprint: bool = False


class KotIssuer:
    """Builds kitchen tickets from the full current cart."""

    def __init__(self, clock: Callable[[], str] = local_now_iso) -> None:
        self.clock = clock

    def issue_ticket(
        self,
        order: Order,
        orders: Iterable[Order],
        captain_name: str,
        today: date | None = None,
    ) -> tuple[Order, KOTRecord]:
        """Return the order with kot_count + 1 and the ticket it produced.

        The first ticket on an order also opens its bill number. Every
        ticket lists the entire cart, not a delta against earlier tickets.
        """
        if not order.daily_bill_no:
            order = replace(order, daily_bill_no=next_bill_number(orders, today))
            logger.info("bill_number_assigned order_id=%s bill_no=%s", order.id, order.daily_bill_no)

        order = replace(order, kot_count=order.kot_count + 1)
        record = KOTRecord(
            id=f"KOT-{uuid4().hex[:12]}",
            order_id=order.id,
            kot_no=order.kot_count,
            table_id=order.table_id,
            captain_name=captain_name,
            items=order.items,
            timestamp=self.clock(),
        )
        logger.info("kot_issued order_id=%s kot_no=%s lines=%d", order.id, record.kot_no, len(record.items))
        return order, record


def render_request(record: KOTRecord, reprint: bool = False) -> TicketRenderRequest:
    return TicketRenderRequest(
        kot_no=record.kot_no,
        table_id=record.table_id,
        captain_name=record.captain_name,
        items=record.items,
        timestamp=record.timestamp,
        reprint=reprint,
    )


def reprint_request(record: KOTRecord) -> TicketRenderRequest:
    """Ticket rendering request for a historical KOT; nothing is mutated."""
    return render_request(record, reprint=True)
