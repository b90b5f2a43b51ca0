"""Bill arithmetic: full precision sums, rounding only for display."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from tablepos.models import OrderItem

_HUNDRED = Decimal("100")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Totals:
    sub_total: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def line_amount(item: OrderItem) -> Decimal:
    return item.price * item.quantity


def compute_totals(items: Iterable[OrderItem]) -> Totals:
    """Derive subtotal, tax and total from the cart lines."""
    sub_total = Decimal("0")
    tax_amount = Decimal("0")
    for item in items:
        amount = line_amount(item)
        sub_total += amount
        tax_amount += amount * item.tax_rate / _HUNDRED
    return Totals(sub_total=sub_total, tax_amount=tax_amount, total_amount=sub_total + tax_amount)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render a monetary value with two decimals."""
    return f"{round_money(value):.2f}"


def gst_breakdown(items: Iterable[OrderItem]) -> dict[Decimal, tuple[Decimal, Decimal, Decimal]]:
    """Group taxable value by rate as (taxable, cgst, sgst); tax splits evenly."""
    breakdown: dict[Decimal, tuple[Decimal, Decimal, Decimal]] = {}
    for item in items:
        taxable = line_amount(item)
        half_tax = taxable * item.tax_rate / _HUNDRED / 2
        prev_taxable, prev_cgst, prev_sgst = breakdown.get(item.tax_rate, (Decimal("0"),) * 3)
        breakdown[item.tax_rate] = (prev_taxable + taxable, prev_cgst + half_tax, prev_sgst + half_tax)
    return breakdown
