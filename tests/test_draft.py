"""
Tests for tablepos.draft: the terminal-local cart.
"""

from decimal import Decimal

import pytest

from tablepos.draft import OrderDraft
from tablepos.errors import ValidationError
from tablepos.models import MenuItem, Order, OrderItem

PANEER = MenuItem(id="paneer", name="Paneer", price=Decimal("100"), group_id="main", tax_id="gst5")
LASSI = MenuItem(id="lassi", name="Sweet Lassi", price=Decimal("45.50"), group_id="drinks", tax_id="exempt")


def _draft():
    changes = []
    return OrderDraft(on_change=lambda draft: changes.append(draft.items)), changes


class TestAddLine:
    def test_new_item_gets_its_own_line(self):
        draft, _ = _draft()
        items = draft.add_line(PANEER, Decimal("5"))
        assert len(items) == 1
        assert items[0].menu_item_id == "paneer"
        assert items[0].quantity == 1
        assert items[0].tax_rate == Decimal("5")
        assert items[0].price == Decimal("100")

    def test_existing_item_bumps_quantity(self):
        draft, _ = _draft()
        draft.add_line(PANEER, Decimal("5"))
        draft.add_line(LASSI, Decimal("0"))
        items = draft.add_line(PANEER, Decimal("5"))
        assert [(item.menu_item_id, item.quantity) for item in items] == [("paneer", 2), ("lassi", 1)]

    def test_each_mutation_notifies(self):
        draft, changes = _draft()
        draft.add_line(PANEER, Decimal("5"))
        draft.add_line(PANEER, Decimal("5"))
        assert len(changes) == 2
        assert changes[-1] is draft.items

    def test_items_are_immutable_tuples(self):
        draft, _ = _draft()
        items = draft.add_line(PANEER, Decimal("5"))
        assert isinstance(items, tuple)
        with pytest.raises(AttributeError):
            items[0].quantity = 9


class TestQuantity:
    def test_set_quantity(self):
        draft, _ = _draft()
        line = draft.add_line(PANEER, Decimal("5"))[0]
        assert draft.set_quantity(line.id, 4)[0].quantity == 4

    def test_zero_removes_line(self):
        draft, _ = _draft()
        line = draft.add_line(PANEER, Decimal("5"))[0]
        assert draft.set_quantity(line.id, 0) == ()
        assert draft.is_empty

    def test_negative_clamped_and_removed(self):
        draft, _ = _draft()
        line = draft.add_line(PANEER, Decimal("5"))[0]
        draft.add_line(LASSI, Decimal("0"))
        items = draft.change_quantity(line.id, -5)
        assert [item.menu_item_id for item in items] == ["lassi"]

    def test_unknown_line_rejected(self):
        draft, changes = _draft()
        with pytest.raises(ValidationError):
            draft.set_quantity("nope", 1)
        assert changes == []


class TestMetadata:
    def test_price_override(self):
        draft, _ = _draft()
        line = draft.add_line(PANEER, Decimal("5"))[0]
        assert draft.set_price(line.id, Decimal("80"))[0].price == Decimal("80")

    def test_negative_price_rejected(self):
        draft, _ = _draft()
        line = draft.add_line(PANEER, Decimal("5"))[0]
        with pytest.raises(ValidationError):
            draft.set_price(line.id, Decimal("-1"))

    def test_customer_name_trimmed(self):
        draft, _ = _draft()
        draft.set_customer("  Meera ")
        assert draft.customer_name == "Meera"
        draft.set_customer("   ")
        assert draft.customer_name is None

    def test_payment_mode_validated(self):
        draft, changes = _draft()
        draft.set_payment_mode("UPI")
        assert draft.payment_mode == "UPI"
        with pytest.raises(ValidationError):
            draft.set_payment_mode("Cheque")
        assert draft.payment_mode == "UPI"
        assert len(changes) == 1

    def test_captain_and_cashier(self):
        draft, changes = _draft()
        draft.set_captain("w2")
        draft.set_cashier("Asha")
        assert (draft.captain_id, draft.cashier_name) == ("w2", "Asha")
        assert len(changes) == 2

    def test_clear(self):
        draft, _ = _draft()
        draft.add_line(PANEER, Decimal("5"))
        assert draft.clear() == ()


class TestLoad:
    def test_adopts_order_without_notifying(self):
        draft, changes = _draft()
        line = OrderItem("x1", "paneer", "Paneer", Decimal("100"), 2, Decimal("5"))
        order = Order(
            id="ORD-1",
            table_id="T5",
            timestamp="2026-10-19T12:00:00",
            captain_id="w2",
            items=(line,),
            status="Billed",
            payment_mode="UPI",
        )
        draft.load(order)
        assert draft.items == (line,)
        assert (draft.captain_id, draft.payment_mode, draft.status) == ("w2", "UPI", "Billed")
        assert changes == []

    def test_load_none_resets_cart_but_keeps_captain(self):
        draft, changes = _draft()
        draft.set_captain("w2")
        draft.add_line(PANEER, Decimal("5"))
        draft.set_payment_mode("Card")
        draft.load(None)
        assert draft.is_empty
        assert draft.payment_mode is None
        assert draft.captain_id == "w2"
        assert draft.status == "Pending"
        assert len(changes) == 3
