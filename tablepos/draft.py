"""Terminal-local cart for the table currently open on this terminal."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from tablepos.constant import ORDER_PENDING, PAYMENT_MODES
from tablepos.errors import ValidationError
from tablepos.models import MenuItem, Order, OrderItem

ChangeListener = Callable[["OrderDraft"], None]


def _new_line_id() -> str:
    return uuid4().hex[:9]


class OrderDraft:
    """Synchronous, in-memory cart state.

    Every mutation replaces the item tuple, notifies the change listener and
    returns the new tuple. `load()` adopts a remote state without notifying.
    """

    def __init__(self, on_change: ChangeListener | None = None) -> None:
        self.on_change = on_change
        self.items: tuple[OrderItem, ...] = ()
        self.captain_id = ""
        self.customer_name: str | None = None
        self.payment_mode: str | None = None
        self.cashier_name: str | None = None
        self.status = ORDER_PENDING

    @property
    def is_empty(self) -> bool:
        return not self.items

    def add_line(self, menu_item: MenuItem, tax_rate: Decimal) -> tuple[OrderItem, ...]:
        """Add a dish, or bump the quantity of its existing line."""
        for idx, item in enumerate(self.items):
            if item.menu_item_id == menu_item.id:
                items = list(self.items)
                items[idx] = replace(item, quantity=item.quantity + 1)
                return self._commit(tuple(items))

        line = OrderItem(
            id=_new_line_id(),
            menu_item_id=menu_item.id,
            name=menu_item.name,
            price=menu_item.price,
            quantity=1,
            tax_rate=tax_rate,
        )
        return self._commit(self.items + (line,))

    def set_quantity(self, line_id: str, quantity: int) -> tuple[OrderItem, ...]:
        """Set a line quantity; anything at or below zero removes the line."""
        self._line(line_id)
        quantity = max(0, int(quantity))
        items = tuple(
            replace(item, quantity=quantity) if item.id == line_id else item for item in self.items
        )
        return self._commit(tuple(item for item in items if item.quantity > 0))

    def change_quantity(self, line_id: str, delta: int) -> tuple[OrderItem, ...]:
        return self.set_quantity(line_id, self._line(line_id).quantity + delta)

    def set_price(self, line_id: str, price: Decimal) -> tuple[OrderItem, ...]:
        """Override the price of one line for this order only."""
        self._line(line_id)
        price = Decimal(price)
        if price < 0:
            raise ValidationError("Price cannot be negative")
        return self._commit(tuple(replace(item, price=price) if item.id == line_id else item for item in self.items))

    def set_captain(self, captain_id: str) -> tuple[OrderItem, ...]:
        self.captain_id = captain_id
        return self._commit(self.items)

    def set_customer(self, customer_name: str | None) -> tuple[OrderItem, ...]:
        self.customer_name = (customer_name or "").strip() or None
        return self._commit(self.items)

    def set_payment_mode(self, payment_mode: str | None) -> tuple[OrderItem, ...]:
        if payment_mode is not None and payment_mode not in PAYMENT_MODES:
            raise ValidationError(f"Unknown payment mode {payment_mode!r}")
        self.payment_mode = payment_mode
        return self._commit(self.items)

    def set_cashier(self, cashier_name: str | None) -> tuple[OrderItem, ...]:
        self.cashier_name = cashier_name
        return self._commit(self.items)

    def clear(self) -> tuple[OrderItem, ...]:
        return self._commit(())

    def load(self, order: Order | None) -> None:
        """Replace the whole draft with an order's state (or an empty cart)."""
        if order is None:
            self.items = ()
            self.customer_name = None
            self.payment_mode = None
            self.cashier_name = None
            self.status = ORDER_PENDING
            return
        self.items = order.items
        self.captain_id = order.captain_id
        self.customer_name = order.customer_name
        self.payment_mode = order.payment_mode
        self.cashier_name = order.cashier_name
        self.status = order.status

    def _line(self, line_id: str) -> OrderItem:
        for item in self.items:
            if item.id == line_id:
                return item
        raise ValidationError(f"No cart line {line_id!r}")

    def _commit(self, items: tuple[OrderItem, ...]) -> tuple[OrderItem, ...]:
        self.items = items
        if self.on_change is not None:
            self.on_change(self)
        return self.items
