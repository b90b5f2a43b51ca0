"""Table occupancy transitions.

Status is a pure function of the bound order's status and whether its cart
is empty; nothing here is timer driven.
"""

from __future__ import annotations

from dataclasses import replace

from tablepos.constant import (
    ORDER_BILLED,
    ORDER_SETTLED,
    TABLE_AVAILABLE,
    TABLE_BILLING,
    TABLE_OCCUPIED,
)
from tablepos.errors import TableBusyError
from tablepos.models import Order, Table


def status_for(order: Order | None, cart_empty: bool) -> str:
    if order is None or cart_empty or order.status == ORDER_SETTLED:
        return TABLE_AVAILABLE
    if order.status == ORDER_BILLED:
        return TABLE_BILLING
    return TABLE_OCCUPIED


def bind(table: Table, order: Order | None, cart_empty: bool) -> Table:
    """Apply the status the bound order implies, pointing the table at it."""
    status = status_for(order, cart_empty)
    if status == TABLE_AVAILABLE or order is None:
        return release(table)
    return replace(table, status=status, current_order_id=order.id)


def release(table: Table) -> Table:
    return replace(table, status=TABLE_AVAILABLE, current_order_id=None)


def reopen(table: Table, order: Order) -> Table:
    """Bind a billed/settled order back for correction; table must be free."""
    if table.status != TABLE_AVAILABLE:
        raise TableBusyError("Table is currently occupied.")
    return replace(table, status=TABLE_BILLING, current_order_id=order.id)
