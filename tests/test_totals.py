"""
Tests for tablepos.totals: bill arithmetic.
"""

from decimal import Decimal

from tablepos.models import OrderItem
from tablepos.totals import compute_totals, format_money, gst_breakdown, line_amount, round_money


def _item(**overrides) -> OrderItem:
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


class TestComputeTotals:
    def test_single_line(self):
        totals = compute_totals([_item()])
        assert totals.sub_total == Decimal("200")
        assert totals.tax_amount == Decimal("10")
        assert totals.total_amount == Decimal("210")

    def test_mixed_rates(self):
        items = [_item(), _item(id="l2", price=Decimal("60"), quantity=1, tax_rate=Decimal("12"))]
        totals = compute_totals(items)
        assert totals.sub_total == Decimal("260")
        assert totals.tax_amount == Decimal("17.2")
        assert totals.total_amount == totals.sub_total + totals.tax_amount

    def test_empty_cart(self):
        totals = compute_totals([])
        assert totals.sub_total == 0
        assert totals.total_amount == 0

    def test_no_intermediate_rounding(self):
        # Rounding each line's tax would give 0.17 * 3 = 0.51.
        items = [_item(id=f"l{i}", price=Decimal("3.33"), quantity=1) for i in range(3)]
        totals = compute_totals(items)
        assert totals.tax_amount == Decimal("0.4995")
        assert format_money(totals.tax_amount) == "0.50"

    def test_line_amount(self):
        assert line_amount(_item(quantity=3)) == Decimal("300")


class TestRounding:
    def test_half_up(self):
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("2.665")) == Decimal("2.67")

    def test_format_money(self):
        assert format_money(Decimal("210")) == "210.00"
        assert format_money(Decimal("0.005")) == "0.01"


class TestGstBreakdown:
    def test_splits_tax_evenly_per_rate(self):
        items = [
            _item(),
            _item(id="l2", menu_item_id="dosa", price=Decimal("50"), quantity=1),
            _item(id="l3", price=Decimal("60"), quantity=1, tax_rate=Decimal("12")),
        ]
        breakdown = gst_breakdown(items)
        assert breakdown[Decimal("5")] == (Decimal("250"), Decimal("6.25"), Decimal("6.25"))
        taxable, cgst, sgst = breakdown[Decimal("12")]
        assert taxable == Decimal("60")
        assert cgst == sgst == Decimal("3.6")
