"""Rendering helpers: Rich labels for the terminal UI, text lines for print."""

from __future__ import annotations

from datetime import datetime

from rich.text import Text

from tablepos.config import (
    BUSINESS_ADDRESS,
    BUSINESS_GSTIN,
    BUSINESS_NAME,
    BUSINESS_PHONE,
    BUSINESS_THANK_YOU,
    PRINTER_LINE_CHARS,
)
from tablepos.constant import TABLE_BILLING, TABLE_OCCUPIED
from tablepos.kot import TicketRenderRequest
from tablepos.models import Order, OrderItem, Table
from tablepos.totals import format_money, gst_breakdown, line_amount


def badge_style(status: str) -> str:
    """Return a consistent badge style for table status tags."""
    if status == TABLE_OCCUPIED:
        return "bold #ffffff on #b23a48"
    if status == TABLE_BILLING:
        return "bold #ffffff on #c77d1a"
    return "bold #0b1f0f on #5fbf72"


def format_table_label(table: Table) -> Text:
    text = Text()
    text.append(f" {table.status[:1]} ", style=badge_style(table.status))
    text.append(f" T-{table.number}")
    return text


def format_cart_line(item: OrderItem) -> Text:
    text = Text()
    text.append(f"{item.quantity:>3} x ", style="bold")
    text.append(item.name)
    text.append(f"  {format_money(line_amount(item))}", style="dim")
    return text


def _time_label(timestamp: str, fmt: str = "%I:%M %p") -> str:
    try:
        return datetime.fromisoformat(timestamp).strftime(fmt)
    except ValueError:
        return ""


def _two_col(left: str, right: str, width: int) -> str:
    gap = max(1, width - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


def _rule(width: int) -> str:
    return "-" * width


def kot_lines(request: TicketRenderRequest, table_number: str, width: int = PRINTER_LINE_CHARS) -> list[str]:
    """Kitchen ticket: every cart line with its quantity, no prices."""
    title = "KOT REPRINT" if request.reprint else "KITCHEN ORDER TICKET"
    lines = [
        title.center(width),
        f"KOT #{request.kot_no}".center(width),
        _rule(width),
        _two_col(f"TABLE: {table_number or 'N/A'}", _time_label(request.timestamp), width),
        f"Capt: {request.captain_name or 'N/A'}",
        _rule(width),
        _two_col("Item Name", "Qty", width),
        _rule(width),
    ]
    for item in request.items:
        qty = str(item.quantity)
        lines.append(_two_col(item.name[: width - len(qty) - 1], qty, width))
    lines.append("--- End of KOT ---".center(width))
    return lines


def bill_lines(
    order: Order,
    table_number: str,
    captain_name: str,
    width: int = PRINTER_LINE_CHARS,
    gst_summary: bool = True,
) -> list[str]:
    """Tax invoice layout; amounts are rounded here and nowhere else."""
    lines = [
        BUSINESS_NAME.center(width),
        BUSINESS_ADDRESS[:width].center(width),
        f"GSTIN: {BUSINESS_GSTIN}".center(width),
        _rule(width),
        "TAX INVOICE".center(width),
        _rule(width),
        _two_col(f"Bill No: {order.daily_bill_no or '-'}", _time_label(order.timestamp, "%d/%m/%Y"), width),
        _two_col(f"Cust: {order.customer_name or 'Walk-in'}", _time_label(order.timestamp), width),
        _two_col(f"Table: {table_number or 'N/A'}", f"Capt: {captain_name or 'N/A'}", width),
        _two_col(f"Cashier: {order.cashier_name or 'Admin'}", f"Mode: {order.payment_mode or 'Cash'}", width),
        _rule(width),
    ]
    for idx, item in enumerate(order.items, start=1):
        lines.append(f"{idx}. {item.name}"[:width])
        lines.append(
            _two_col(f"   {item.quantity} x {format_money(item.price)}", format_money(line_amount(item)), width)
        )
    lines += [
        _rule(width),
        _two_col("Subtotal:", format_money(order.sub_total), width),
        _two_col("Total GST:", format_money(order.tax_amount), width),
        _rule(width),
        _two_col("GRAND TOTAL:", format_money(order.total_amount), width),
        _rule(width),
    ]
    breakdown = gst_breakdown(order.items)
    if gst_summary and breakdown:
        lines.append("GST Summary".center(width))
        lines.append("Rate  Taxable   CGST    SGST")
        for rate, (taxable, cgst, sgst) in sorted(breakdown.items()):
            lines.append(
                f"{format_money(rate) + '%':<6}{format_money(taxable):>8}{format_money(cgst):>8}{format_money(sgst):>8}"
            )
        lines.append(_rule(width))
    lines += [BUSINESS_THANK_YOU.center(width), f"Contact: {BUSINESS_PHONE}".center(width)]
    return lines
