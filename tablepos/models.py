"""Domain models for tablepos."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from tablepos.constant import FOOD_VEG, ORDER_PENDING, TABLE_AVAILABLE


@dataclass(frozen=True)
class Tax:
    """A tax slab; rate is a percentage (5 means 5%)."""

    id: str
    name: str
    rate: Decimal


@dataclass(frozen=True)
class Group:
    id: str
    name: str


@dataclass(frozen=True)
class Captain:
    """Floor staff who took the order."""

    id: str
    name: str
    phone: str | None = None


@dataclass(frozen=True)
class MenuItem:
    """A catalog dish."""

    id: str
    name: str
    price: Decimal
    group_id: str
    tax_id: str
    food_type: str = FOOD_VEG


@dataclass(frozen=True)
class OrderItem:
    """One cart line with name, price and tax snapshots taken at add time."""

    id: str
    menu_item_id: str
    name: str
    price: Decimal
    quantity: int
    tax_rate: Decimal
    # Carried for compatibility; kitchen tickets always print the full cart.
    printed_qty: int | None = None


@dataclass(frozen=True)
class Table:
    id: str
    number: str
    status: str = TABLE_AVAILABLE
    current_order_id: str | None = None


@dataclass(frozen=True)
class Order:
    """The shared order record for one table visit."""

    id: str
    table_id: str
    timestamp: str
    captain_id: str = ""
    daily_bill_no: str = ""
    items: tuple[OrderItem, ...] = ()
    status: str = ORDER_PENDING
    sub_total: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    kot_count: int = 0
    customer_name: str | None = None
    payment_mode: str | None = None
    cashier_name: str | None = None


@dataclass(frozen=True)
class KOTRecord:
    """Immutable kitchen ticket snapshot taken from an order at issue time."""

    id: str
    order_id: str
    kot_no: int
    table_id: str
    captain_name: str
    items: tuple[OrderItem, ...]
    timestamp: str
