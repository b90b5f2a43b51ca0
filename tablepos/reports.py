"""Reporting collaborator: day book, sales summaries and order re-open."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable

from tablepos import tables
from tablepos.billing import local_day
from tablepos.constant import KOTS, ORDER_BILLED, ORDER_SETTLED, ORDERS, TABLES
from tablepos.documents import (
    kot_from_document,
    order_from_document,
    order_to_document,
    table_from_document,
    table_to_document,
)
from tablepos.errors import ValidationError
from tablepos.kot import TicketRenderRequest, reprint_request
from tablepos.models import Captain, KOTRecord, Order
from tablepos.persistence import DocumentStore
from tablepos.totals import line_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemSales:
    name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class CaptainSales:
    name: str
    count: int
    sales: Decimal


def _bill_sort_key(order: Order) -> int:
    try:
        return int(order.daily_bill_no)
    except ValueError:
        return 0


def day_book(orders: Iterable[Order], day: date) -> list[Order]:
    """Orders with a bill number created on `day`, latest bill first."""
    rows = [order for order in orders if order.daily_bill_no and local_day(order.timestamp) == day]
    return sorted(rows, key=_bill_sort_key, reverse=True)


def settled_sales(orders: Iterable[Order]) -> tuple[list[Order], Decimal]:
    closed = [order for order in orders if order.status in (ORDER_BILLED, ORDER_SETTLED)]
    return closed, sum((order.total_amount for order in closed), Decimal("0"))


def item_summary(orders: Iterable[Order]) -> list[ItemSales]:
    summary: dict[str, ItemSales] = {}
    for order in orders:
        for item in order.items:
            prev = summary.get(item.menu_item_id, ItemSales(item.name, 0, Decimal("0")))
            summary[item.menu_item_id] = ItemSales(
                prev.name, prev.quantity + item.quantity, prev.revenue + line_amount(item)
            )
    return sorted(summary.values(), key=lambda row: row.revenue, reverse=True)


def captain_summary(orders: Iterable[Order], captains: Iterable[Captain]) -> list[CaptainSales]:
    orders = list(orders)
    stats = []
    for captain in captains:
        served = [order for order in orders if order.captain_id == captain.id]
        stats.append(CaptainSales(captain.name, len(served), sum((o.total_amount for o in served), Decimal("0"))))
    return sorted(stats, key=lambda row: row.sales, reverse=True)


def reopen_order(store: DocumentStore, order_id: str) -> Order:
    """Bind a billed/settled order back to its table for correction.

    Raises TableBusyError when the table is not Available, since another
    session may already be editing it.
    """
    order_doc = store.get(ORDERS, order_id)
    if order_doc is None:
        raise ValidationError(f"Unknown order {order_id!r}")
    order = order_from_document(order_doc)
    if order.status not in (ORDER_BILLED, ORDER_SETTLED):
        raise ValidationError("Only billed or settled orders can be re-opened")

    table_doc = store.get(TABLES, order.table_id)
    if table_doc is None:
        raise ValidationError(f"Unknown table {order.table_id!r}")
    table = tables.reopen(table_from_document(table_doc), order)

    order = replace(order, status=ORDER_BILLED)
    store.put(ORDERS, order.id, order_to_document(order))
    store.put(TABLES, table.id, table_to_document(table))
    logger.info("order_reopened order_id=%s table=%s", order.id, table.id)
    return order


def load_orders(store: DocumentStore) -> list[Order]:
    return [order_from_document(doc) for doc in store.list_all(ORDERS)]


def kots_for_order(store: DocumentStore, order_id: str) -> list[KOTRecord]:
    """Stored kitchen tickets of one order, oldest first."""
    records = [kot_from_document(doc) for doc in store.list_all(KOTS) if doc.get("orderId") == order_id]
    return sorted(records, key=lambda record: record.kot_no)


def reprint_tickets(store: DocumentStore, order_id: str) -> list[TicketRenderRequest]:
    return [reprint_request(record) for record in kots_for_order(store, order_id)]
