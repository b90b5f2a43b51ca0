"""Order synchronization between one terminal's cart and the shared store.

A `TableSession` exists per (terminal, open table). Local cart edits are
turned into whole-document pushes; remote collection snapshots are compared
by canonical signature to tell echoes of our own writes from real changes,
which are adopted wholesale (last write wins, no field merge). Once the
session sees the order Settled it latches and refuses further edits until
the operator leaves and re-opens the table.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Iterable
from uuid import uuid4

from tablepos import tables
from tablepos.billing import local_now_iso, next_bill_number
from tablepos.config import ORDER_ID_PREFIX
from tablepos.constant import (
    KOTS,
    ORDER_BILLED,
    ORDER_PENDING,
    ORDER_SETTLED,
    ORDERS,
    PAYMENT_MODES,
    TABLE_AVAILABLE,
    TABLES,
)
from tablepos.documents import (
    Document,
    decimal_to_wire,
    kot_to_document,
    order_from_document,
    order_to_document,
    table_from_document,
    table_to_document,
)
from tablepos.draft import OrderDraft
from tablepos.errors import OrderStateError, SessionLatchedError, ValidationError
from tablepos.kot import KotIssuer
from tablepos.masters import Catalog
from tablepos.models import KOTRecord, Order, OrderItem, Table
from tablepos.persistence import DocumentStore
from tablepos.pusher import Pusher
from tablepos.totals import compute_totals

logger = logging.getLogger(__name__)

EDITABLE = "Editable"
LATCHED_SETTLED = "LatchedSettled"

_MAX_IN_FLIGHT = 64


def _canonical_decimal(value) -> str:
    normalized = value.normalize()
    return decimal_to_wire(normalized if normalized != 0 else abs(normalized))


def signature(
    items: Iterable[OrderItem],
    captain_id: str,
    customer_name: str | None,
    payment_mode: str | None,
    status: str,
) -> str:
    """Stable serialization of the fields a cart edit can change."""
    payload = {
        "items": [
            {
                "id": item.id,
                "menuItemId": item.menu_item_id,
                "name": item.name,
                "price": _canonical_decimal(item.price),
                "quantity": item.quantity,
                "taxRate": _canonical_decimal(item.tax_rate),
            }
            for item in items
        ],
        "captainId": captain_id or "",
        "customerName": customer_name or "",
        "paymentMode": payment_mode or "",
        "status": status,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def order_signature(order: Order) -> str:
    return signature(order.items, order.captain_id, order.customer_name, order.payment_mode, order.status)


def draft_signature(draft: OrderDraft) -> str:
    return signature(draft.items, draft.captain_id, draft.customer_name, draft.payment_mode, draft.status)


class TableSession:
    """Editing session for one table on one terminal."""

    def __init__(
        self,
        table_id: str,
        store: DocumentStore,
        pusher: Pusher,
        catalog: Catalog,
        terminal_id: str = "",
        clock: Callable[[], str] = local_now_iso,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.table_id = table_id
        self.store = store
        self.pusher = pusher
        self.catalog = catalog
        self.terminal_id = terminal_id
        self.clock = clock
        self.today = today
        self.issuer = KotIssuer(clock=clock)
        self.state = EDITABLE
        self.draft = OrderDraft(on_change=self._on_local_mutation)
        self.order_id: str | None = None
        self.last_pushed_signature: str | None = None
        self.on_update: Callable[[TableSession], None] | None = None

        self._order: Order | None = None
        self._tables: dict[str, Table] = {}
        self._orders: dict[str, Order] = {}
        self._remote_seen: set[str] = set()
        self._last_observed_signature: str | None = None
        # Signatures pushed by this session whose echo has not come back yet.
        self._in_flight: list[str] = []
        self._unsubscribers: list[Callable[[], None]] = []
        self._lock = threading.RLock()
        self._closed = False

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        """Load the current table/order state and subscribe to changes."""
        with self._lock:
            self._tables = {doc["id"]: table_from_document(doc) for doc in self.store.list_all(TABLES)}
            if self.table_id not in self._tables:
                raise ValidationError(f"Unknown table {self.table_id!r}")
            self._orders = {doc["id"]: order_from_document(doc) for doc in self.store.list_all(ORDERS)}

            table = self._tables[self.table_id]
            order = self._orders.get(table.current_order_id or "")
            if order is not None:
                self._bind(order)
                self._remote_seen.add(order.id)
                self._last_observed_signature = order_signature(order)
                self.draft.load(order)
                if order.status == ORDER_SETTLED:
                    self.state = LATCHED_SETTLED
            elif self.catalog.captains:
                self.draft.captain_id = next(iter(self.catalog.captains))

            self._unsubscribers = [
                self.store.subscribe(ORDERS, self._on_orders_snapshot),
                self.store.subscribe(TABLES, self._on_tables_snapshot),
            ]
        logger.info(
            "session_start terminal=%s table=%s order_id=%s state=%s",
            self.terminal_id,
            self.table_id,
            self.order_id,
            self.state,
        )

    def close(self) -> None:
        with self._lock:
            self._closed = True
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            self._unsubscribers = []
        logger.info("session_end terminal=%s table=%s", self.terminal_id, self.table_id)

    @property
    def latched(self) -> bool:
        return self.state == LATCHED_SETTLED

    @property
    def order(self) -> Order | None:
        return self._order

    @property
    def table(self) -> Table:
        return self._tables[self.table_id]

    def known_orders(self) -> list[Order]:
        return list(self._orders.values())

    # -- local edits -----------------------------------------------------

    def add_item(self, menu_item_id: str) -> tuple[OrderItem, ...]:
        menu_item = self.catalog.menu.get(menu_item_id)
        if menu_item is None:
            raise ValidationError(f"Unknown menu item {menu_item_id!r}")
        if self._ignored("add_item"):
            return self.draft.items
        return self.draft.add_line(menu_item, self.catalog.tax_rate_for(menu_item))

    def set_quantity(self, line_id: str, quantity: int) -> tuple[OrderItem, ...]:
        if self._ignored("set_quantity"):
            return self.draft.items
        return self.draft.set_quantity(line_id, quantity)

    def change_quantity(self, line_id: str, delta: int) -> tuple[OrderItem, ...]:
        if self._ignored("change_quantity"):
            return self.draft.items
        return self.draft.change_quantity(line_id, delta)

    def set_price(self, line_id: str, price) -> tuple[OrderItem, ...]:
        if self._ignored("set_price"):
            return self.draft.items
        return self.draft.set_price(line_id, price)

    def set_captain(self, captain_id: str) -> tuple[OrderItem, ...]:
        if self._ignored("set_captain"):
            return self.draft.items
        return self.draft.set_captain(captain_id)

    def set_customer(self, customer_name: str | None) -> tuple[OrderItem, ...]:
        if self._ignored("set_customer"):
            return self.draft.items
        return self.draft.set_customer(customer_name)

    def set_payment_mode(self, payment_mode: str | None) -> tuple[OrderItem, ...]:
        if self._ignored("set_payment_mode"):
            return self.draft.items
        return self.draft.set_payment_mode(payment_mode)

    def clear(self) -> tuple[OrderItem, ...]:
        if self._ignored("clear"):
            return self.draft.items
        return self.draft.clear()

    def _ignored(self, op: str) -> bool:
        if self.latched:
            logger.info("edit_ignored table=%s op=%s reason=settled", self.table_id, op)
            return True
        return False

    def _on_local_mutation(self, draft: OrderDraft) -> None:
        with self._lock:
            if self.latched:
                return
            if draft.is_empty:
                self._discard_or_release()
                return
            self._push_order(self._build_order())

    # -- ticket / bill / settle ------------------------------------------

    def request_kot(self) -> KOTRecord:
        """Issue a kitchen ticket for the full cart and push it."""
        with self._lock:
            self._refuse_if_latched("KOT")
            if self.draft.is_empty:
                raise OrderStateError("Cart is empty")
            order, record = self.issuer.issue_ticket(
                self._build_order(),
                self.known_orders(),
                self.catalog.captain_name(self.draft.captain_id),
                today=self.today(),
            )
            self._push_order(order)
            kot_doc = kot_to_document(record)
            self.pusher.submit(f"kot {record.id}", lambda: self.store.put(KOTS, record.id, kot_doc))
            return record

    def request_bill(self) -> Order:
        """Mark the order Billed (opening a bill number if needed)."""
        with self._lock:
            self._refuse_if_latched("bill")
            if self.draft.is_empty:
                raise OrderStateError("Cart is empty")
            order = self._build_order()
            if not order.daily_bill_no:
                order = replace(order, daily_bill_no=next_bill_number(self.known_orders(), self.today()))
            order = replace(order, status=ORDER_BILLED)
            self.draft.status = ORDER_BILLED
            self._push_order(order)
            logger.info("order_billed order_id=%s bill_no=%s", order.id, order.daily_bill_no)
            return order

    def settle(self, payment_mode: str | None = None, cashier_name: str | None = None) -> Order:
        """Close a billed order and free the table; the session latches."""
        with self._lock:
            self._refuse_if_latched("settle")
            if self._order is None or self._order.status != ORDER_BILLED:
                raise OrderStateError("Only a billed order can be settled")
            if payment_mode is not None and payment_mode not in PAYMENT_MODES:
                raise ValidationError(f"Unknown payment mode {payment_mode!r}")
            order = self._build_order()
            order = replace(
                order,
                status=ORDER_SETTLED,
                payment_mode=payment_mode or order.payment_mode,
                cashier_name=cashier_name or order.cashier_name,
            )
            self._push_order(order)
            self.draft.load(order)
            self.state = LATCHED_SETTLED
            self._forget_all_pushes()
            logger.info("order_settled order_id=%s bill_no=%s", order.id, order.daily_bill_no)
            return order

    def _refuse_if_latched(self, op: str) -> None:
        if self.latched:
            raise SessionLatchedError(f"Order was settled; leave and re-open the table before {op}")

    # -- push path -------------------------------------------------------

    def _build_order(self) -> Order:
        base = self._order
        if base is None:
            base = Order(id=f"{ORDER_ID_PREFIX}{uuid4().hex[:12]}", table_id=self.table_id, timestamp=self.clock())
        remote = self._orders.get(base.id)
        # Never lose a bill number or ticket count another terminal already wrote.
        daily_bill_no = base.daily_bill_no or (remote.daily_bill_no if remote is not None else "")
        kot_count = max(base.kot_count, remote.kot_count if remote is not None else 0)
        totals = compute_totals(self.draft.items)
        return replace(
            base,
            daily_bill_no=daily_bill_no,
            kot_count=kot_count,
            captain_id=self.draft.captain_id,
            items=self.draft.items,
            status=self.draft.status,
            customer_name=self.draft.customer_name,
            payment_mode=self.draft.payment_mode,
            cashier_name=self.draft.cashier_name,
            sub_total=totals.sub_total,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
        )

    def _push_order(self, order: Order) -> None:
        self._bind(order)
        self._orders[order.id] = order
        table = tables.bind(self.table, order, cart_empty=not order.items)
        self._tables[table.id] = table
        sig = order_signature(order)
        self.last_pushed_signature = sig
        self._in_flight.append(sig)
        del self._in_flight[:-_MAX_IN_FLIGHT]

        order_doc = order_to_document(order)
        table_doc = table_to_document(table)

        def put_order() -> None:
            try:
                self.store.put(ORDERS, order.id, order_doc)
            except Exception:
                # No echo will come back for a write that never landed.
                self._forget_push(sig)
                raise

        logger.debug("push order_id=%s status=%s lines=%d", order.id, order.status, len(order.items))
        self.pusher.submit(f"order {order.id}", put_order)
        self.pusher.submit(f"table {table.id}", lambda: self.store.put(TABLES, table.id, table_doc))

    def _forget_push(self, sig: str) -> None:
        with self._lock:
            if sig in self._in_flight:
                self._in_flight.remove(sig)
            if self.last_pushed_signature == sig:
                self.last_pushed_signature = None

    def _forget_all_pushes(self) -> None:
        self.last_pushed_signature = None
        self._in_flight.clear()

    def _discard_or_release(self) -> None:
        order = self._order
        remote = self._orders.get(order.id) if order is not None else None
        billed_remotely = remote is not None and bool(remote.daily_bill_no)
        if order is not None and not order.daily_bill_no and not billed_remotely and order.status == ORDER_PENDING:
            order_id = order.id
            logger.info("draft_discarded order_id=%s table=%s", order_id, self.table_id)
            self._orders.pop(order_id, None)
            self._remote_seen.discard(order_id)
            self.pusher.submit(f"delete {order_id}", lambda: self.store.delete(ORDERS, order_id))
        elif order is not None:
            logger.info("cart_emptied_after_billing order_id=%s retained", order.id)
        self._unbind()

        if self.table.status == TABLE_AVAILABLE and self.table.current_order_id is None:
            return
        table = tables.release(self.table)
        self._tables[table.id] = table
        table_doc = table_to_document(table)
        self.pusher.submit(f"table {table.id}", lambda: self.store.put(TABLES, table.id, table_doc))

    def _bind(self, order: Order) -> None:
        self._order = order
        self.order_id = order.id

    def _unbind(self) -> None:
        self._order = None
        self.order_id = None
        self._last_observed_signature = None
        self._forget_all_pushes()
        self.draft.status = ORDER_PENDING

    # -- remote path -----------------------------------------------------

    def _on_orders_snapshot(self, snapshot: list[Document]) -> None:
        with self._lock:
            if self._closed:
                return
            self._orders = {doc["id"]: order_from_document(doc) for doc in snapshot}
            self._reconcile()

    def _on_tables_snapshot(self, snapshot: list[Document]) -> None:
        with self._lock:
            if self._closed:
                return
            self._tables.update({doc["id"]: table_from_document(doc) for doc in snapshot})
            self._reconcile()

    def _reconcile(self) -> None:
        table = self._tables.get(self.table_id)
        order_id = (table.current_order_id if table is not None else None) or self.order_id
        if order_id is None:
            return

        remote = self._orders.get(order_id)
        if remote is None:
            if order_id in self._remote_seen and order_id == self.order_id and not self.latched:
                logger.info("remote_discard order_id=%s table=%s", order_id, self.table_id)
                self._remote_seen.discard(order_id)
                self._unbind()
                self.draft.load(None)
                self._notify()
            return

        self._remote_seen.add(remote.id)
        self._observe_remote(remote)

    def _observe_remote(self, remote: Order) -> None:
        sig = order_signature(remote)
        if remote.id == self.order_id and sig == self._last_observed_signature:
            return
        self._last_observed_signature = sig

        if self.latched:
            return
        if sig in self._in_flight:
            # Earlier pushes may echo back after newer ones were queued.
            del self._in_flight[: self._in_flight.index(sig) + 1]
            logger.debug("echo_ignored order_id=%s", remote.id)
            return
        if sig == draft_signature(self.draft):
            # Same cart already on screen; just remember which document it is.
            if self._order is None or self._order.id != remote.id:
                self._bind(remote)
            return

        # Writes still queued here are superseded; when they land they are
        # remote changes like any other, not echoes.
        self._forget_all_pushes()
        self._bind(remote)
        self.draft.load(remote)
        if remote.status == ORDER_SETTLED:
            self.state = LATCHED_SETTLED
            logger.info("session_latched order_id=%s table=%s", remote.id, self.table_id)
        else:
            logger.info("remote_adopted order_id=%s table=%s lines=%d", remote.id, self.table_id, len(remote.items))
        self._notify()

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self)
