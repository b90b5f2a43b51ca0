"""
Tests for tablepos.sync: per-table sessions shared between terminals.
"""

from decimal import Decimal

import pytest

from tablepos.constant import KOTS, ORDERS, TABLES
from tablepos.errors import OrderStateError, SessionLatchedError, ValidationError
from tablepos.models import OrderItem
from tablepos.pusher import InlinePusher, ManualPusher
from tablepos.sync import LATCHED_SETTLED, draft_signature, order_signature, signature


def _line(**overrides) -> OrderItem:
    defaults = dict(
        id="l1",
        menu_item_id="paneer",
        name="Paneer",
        price=Decimal("100"),
        quantity=2,
        tax_rate=Decimal("5"),
    )
    defaults.update(overrides)
    return OrderItem(**defaults)


class TestSignature:
    def test_equivalent_decimals_match(self):
        a = signature([_line(price=Decimal("100"))], "w1", None, None, "Pending")
        b = signature([_line(price=Decimal("100.00"))], "w1", None, None, "Pending")
        assert a == b

    def test_payment_mode_changes_signature(self):
        a = signature([_line()], "w1", None, None, "Pending")
        b = signature([_line()], "w1", None, "UPI", "Pending")
        assert a != b

    def test_unset_and_empty_metadata_match(self):
        assert signature([], "", None, None, "Pending") == signature([], "", "", "", "Pending")


class TestLocalPush:
    def test_first_edit_creates_order_and_occupies_table(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.add_item("paneer")

        doc = store.get(ORDERS, session.order_id)
        assert doc["items"][0]["quantity"] == 2
        assert doc["subTotal"] == "200"
        assert doc["taxAmount"] == "10"
        assert doc["totalAmount"] == "210"
        assert doc["tableId"] == "T5"
        assert doc["status"] == "Pending"

        table = store.get(TABLES, "T5")
        assert table["status"] == "Occupied"
        assert table["currentOrderId"] == session.order_id

    def test_totals_kept_at_full_precision(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("lassi")
        session.set_price(session.draft.items[0].id, Decimal("33.333"))
        session.set_quantity(session.draft.items[0].id, 3)
        assert session.order.sub_total == Decimal("99.999")
        assert Decimal(store.get(ORDERS, session.order_id)["totalAmount"]) == Decimal("99.999")

    def test_order_id_stable_across_pushes(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        order_id = session.order_id
        for _ in range(3):
            session.set_captain("w1")
        session.add_item("lassi")
        assert session.order_id == order_id
        assert len(store.list_all(ORDERS)) == 1

    def test_last_pushed_signature_recorded(self, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        assert session.last_pushed_signature == order_signature(session.order)
        assert session.last_pushed_signature == draft_signature(session.draft)

    def test_default_captain_assigned_on_fresh_table(self, terminal):
        session = terminal("A").open_table("T5")
        assert session.draft.captain_id == "w1"

    def test_unknown_menu_item_rejected(self, store, terminal):
        session = terminal("A").open_table("T5")
        with pytest.raises(ValidationError):
            session.add_item("missing")
        assert store.list_all(ORDERS) == []

    def test_unknown_table_rejected(self, terminal):
        with pytest.raises(ValidationError):
            terminal("A").open_table("T99")


class TestEmptyCart:
    def test_empty_without_bill_number_deletes_order(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        order_id = session.order_id
        session.set_quantity(session.draft.items[0].id, 0)

        assert store.get(ORDERS, order_id) is None
        table = store.get(TABLES, "T5")
        assert table["status"] == "Available"
        assert "currentOrderId" not in table
        assert session.order_id is None

    def test_empty_after_bill_number_retains_order(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_kot()
        order_id = session.order_id
        session.clear()

        doc = store.get(ORDERS, order_id)
        assert doc is not None
        assert doc["dailyBillNo"] == "00001"
        assert len(doc["items"]) == 1
        assert store.get(TABLES, "T5")["status"] == "Available"

    def test_next_edit_after_retained_empty_starts_new_order(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_kot()
        first_id = session.order_id
        session.clear()
        session.add_item("lassi")

        assert session.order_id != first_id
        assert len(store.list_all(ORDERS)) == 2
        assert store.get(TABLES, "T5")["currentOrderId"] == session.order_id


class TestKot:
    def test_first_ticket_opens_bill_number(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        record = session.request_kot()

        assert record.kot_no == 1
        doc = store.get(ORDERS, session.order_id)
        assert doc["kotCount"] == 1
        assert doc["dailyBillNo"] == "00001"
        assert store.get(KOTS, record.id)["kotNo"] == 1

    def test_each_ticket_increments_by_one_and_keeps_bill_number(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_kot()
        session.add_item("lassi")
        record = session.request_kot()

        assert record.kot_no == 2
        assert [item.menu_item_id for item in record.items] == ["paneer", "lassi"]
        doc = store.get(ORDERS, session.order_id)
        assert doc["kotCount"] == 2
        assert doc["dailyBillNo"] == "00001"

    def test_bill_number_continues_from_todays_orders(self, store, terminal):
        store.put(
            ORDERS,
            "ORD-old",
            {"id": "ORD-old", "tableId": "T1", "timestamp": "2026-10-19T09:00:00", "dailyBillNo": "00003"},
        )
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_kot()
        assert session.order.daily_bill_no == "00004"

    def test_empty_cart_refused(self, terminal):
        session = terminal("A").open_table("T5")
        with pytest.raises(OrderStateError):
            session.request_kot()


class TestBillAndSettle:
    def test_bill_moves_table_to_billing(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        order = session.request_bill()

        assert order.status == "Billed"
        assert order.daily_bill_no == "00001"
        assert store.get(ORDERS, order.id)["status"] == "Billed"
        assert store.get(TABLES, "T5")["status"] == "Billing"

    def test_settle_requires_billed_order(self, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        with pytest.raises(OrderStateError):
            session.settle("Cash")

    def test_settle_rejects_unknown_payment_mode(self, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_bill()
        with pytest.raises(ValidationError):
            session.settle("Cheque")

    def test_settle_frees_table_and_latches(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_bill()
        order = session.settle("Card", cashier_name="Asha")

        doc = store.get(ORDERS, order.id)
        assert doc["status"] == "Settled"
        assert doc["paymentMode"] == "Card"
        assert doc["cashierName"] == "Asha"
        assert store.get(TABLES, "T5")["status"] == "Available"
        assert session.state == LATCHED_SETTLED

    def test_bill_number_never_reassigned(self, store, terminal):
        session = terminal("A").open_table("T5")
        session.add_item("paneer")
        session.request_kot()
        session.add_item("lassi")
        order = session.request_bill()
        assert order.daily_bill_no == "00001"


class TestLatch:
    def _settled_elsewhere(self, terminal):
        a = terminal("A").open_table("T5")
        a.add_item("paneer")
        a.request_bill()
        b = terminal("B").open_table("T5")
        b.settle("Cash")
        return a, b

    def test_remote_settle_latches_session(self, terminal):
        a, _ = self._settled_elsewhere(terminal)
        assert a.latched
        assert a.draft.status == "Settled"

    def test_latched_mutations_are_no_ops(self, store, terminal):
        a, _ = self._settled_elsewhere(terminal)
        before = store.get(ORDERS, a.order_id)
        items = a.draft.items

        assert a.add_item("lassi") == items
        assert a.set_quantity(items[0].id, 0) == items
        assert a.clear() == items
        assert store.get(ORDERS, a.order_id) == before
        assert store.get(TABLES, "T5")["status"] == "Available"

    def test_latched_ticket_and_bill_refused(self, terminal):
        a, _ = self._settled_elsewhere(terminal)
        with pytest.raises(SessionLatchedError):
            a.request_kot()
        with pytest.raises(SessionLatchedError):
            a.request_bill()

    def test_reentering_table_resets_session(self, terminal):
        ctx = terminal("A")
        a = ctx.open_table("T5")
        a.add_item("paneer")
        a.request_bill()
        terminal("B").open_table("T5").settle("UPI")
        assert a.latched

        fresh = ctx.open_table("T5")
        assert not fresh.latched
        assert fresh.draft.is_empty
        fresh.add_item("lassi")
        assert fresh.order_id != a.order_id


class TestTwoTerminals:
    def test_identical_snapshot_causes_no_change(self, store, terminal):
        a = terminal("A").open_table("T5")
        a.add_item("paneer")
        a.add_item("paneer")
        assert a.order.sub_total == Decimal("200")
        assert a.order.tax_amount == Decimal("10")
        assert a.order.total_amount == Decimal("210")

        b = terminal("B").open_table("T5")
        assert b.draft.items == a.draft.items
        updates = []
        b.on_update = updates.append
        items = b.draft.items

        # Re-pushes the same cart; B receives a snapshot with an equal signature.
        a.set_captain(a.draft.captain_id)

        assert updates == []
        assert b.draft.items is items

    def test_remote_change_overrides_unsynced_local_edit(self, store, terminal):
        a_pusher = ManualPusher()
        a = terminal("A", a_pusher).open_table("T5")
        a.add_item("paneer")
        a.add_item("paneer")
        a_pusher.flush()

        b = terminal("B").open_table("T5")
        updates = []
        a.on_update = updates.append

        a.change_quantity(a.draft.items[0].id, 1)
        assert a.draft.items[0].quantity == 3
        b.set_payment_mode("UPI")

        assert a.draft.payment_mode == "UPI"
        assert a.draft.items[0].quantity == 2
        assert updates == [a]
        # A's superseded write is still queued; nothing cancels it.
        assert len(a_pusher.pending) == 2

        # When it lands it is the latest write, and both terminals follow it.
        a_pusher.flush()
        doc = store.get(ORDERS, a.order_id)
        assert doc["items"][0]["quantity"] == 3
        assert doc["paymentMode"] is None
        for session in (a, b):
            assert session.draft.items[0].quantity == doc["items"][0]["quantity"]
            assert session.draft.payment_mode == doc["paymentMode"]
        assert updates == [a, a]

    def test_late_echo_of_earlier_push_not_adopted(self, terminal):
        pusher = ManualPusher()
        a = terminal("A", pusher).open_table("T5")
        a.add_item("paneer")
        a.add_item("paneer")
        a.add_item("lassi")
        pusher.flush()
        assert [item.quantity for item in a.draft.items] == [2, 1]

    def test_echo_of_own_push_ignored(self, terminal):
        a = terminal("A").open_table("T5")
        updates = []
        a.on_update = updates.append
        a.add_item("paneer")
        a.add_item("lassi")
        assert updates == []

    def test_remote_discard_empties_other_terminal(self, terminal):
        a = terminal("A").open_table("T5")
        a.add_item("paneer")
        b = terminal("B").open_table("T5")
        assert len(b.draft.items) == 1

        a.clear()

        assert b.draft.is_empty
        assert b.order_id is None
        assert b.table.status == "Available"

    def test_remote_bill_number_survives_local_push(self, store, terminal):
        a = terminal("A").open_table("T5")
        a.add_item("paneer")
        b = terminal("B").open_table("T5")
        b.request_kot()

        a.add_item("lassi")
        doc = store.get(ORDERS, a.order_id)
        assert doc["dailyBillNo"] == "00001"
        assert doc["kotCount"] == 1

    def test_closed_session_ignores_snapshots(self, terminal):
        ctx = terminal("B")
        a = terminal("A").open_table("T5")
        b = ctx.open_table("T5")
        ctx.leave_table()

        a.add_item("paneer")
        assert b.draft.is_empty


class TestPushFailure:
    def test_failure_surfaces_and_keeps_local_state(self, store, terminal):
        errors = []
        pusher = InlinePusher(on_error=lambda label, exc: errors.append((label, str(exc))))
        session = terminal("A", pusher).open_table("T5")
        store.fail_next(1)

        session.add_item("paneer")

        assert len(errors) == 1
        label, message = errors[0]
        assert label == f"order {session.order_id}"
        assert "store unavailable" in message
        assert len(session.draft.items) == 1
        assert store.get(ORDERS, session.order_id) is None

    def test_failed_write_not_mistaken_for_echo(self, store, terminal):
        a = terminal("A", InlinePusher()).open_table("T5")
        a.add_item("paneer")
        line_id = a.draft.items[0].id
        store.fail_next(1)
        a.change_quantity(line_id, 1)
        store.fail_next(1)
        a.change_quantity(line_id, 1)
        assert a.draft.items[0].quantity == 3
        assert store.get(ORDERS, a.order_id)["items"][0]["quantity"] == 1

        # B writes exactly the state A failed to push first.
        b = terminal("B").open_table("T5")
        b.change_quantity(line_id, 1)

        assert store.get(ORDERS, a.order_id)["items"][0]["quantity"] == 2
        assert a.draft.items[0].quantity == 2
        assert b.draft.items[0].quantity == 2

    def test_next_successful_push_converges(self, store, terminal):
        session = terminal("A", InlinePusher()).open_table("T5")
        store.fail_next(1)
        session.add_item("paneer")
        session.add_item("paneer")
        assert store.get(ORDERS, session.order_id)["items"][0]["quantity"] == 2
