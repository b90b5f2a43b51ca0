"""Document shapes exchanged with the shared store.

Field names follow the camelCase layout every terminal reads and writes.
Money and tax rates travel as decimal strings so the round trip is exact.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from tablepos.errors import ValidationError
from tablepos.models import Captain, Group, KOTRecord, MenuItem, Order, OrderItem, Table, Tax

Document = dict[str, Any]


def strip_unset(value: Any) -> Any:
    """Recursively drop keys whose value is None."""
    if isinstance(value, dict):
        return {key: strip_unset(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [strip_unset(item) for item in value if item is not None]
    return value


def decimal_to_wire(value: Decimal) -> str:
    return format(value, "f")


def decimal_from_wire(raw: Any, field_name: str) -> Decimal:
    if isinstance(raw, float):
        # Legacy documents may carry JSON numbers.
        raw = repr(raw)
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} is not a number: {raw!r}") from exc


def item_to_document(item: OrderItem) -> Document:
    return {
        "id": item.id,
        "menuItemId": item.menu_item_id,
        "name": item.name,
        "price": decimal_to_wire(item.price),
        "quantity": item.quantity,
        "taxRate": decimal_to_wire(item.tax_rate),
        "printedQty": item.printed_qty,
    }


def item_from_document(doc: Document) -> OrderItem:
    return OrderItem(
        id=str(doc["id"]),
        menu_item_id=str(doc.get("menuItemId", "")),
        name=str(doc.get("name", "")),
        price=decimal_from_wire(doc.get("price", "0"), "price"),
        quantity=int(doc.get("quantity", 0)),
        tax_rate=decimal_from_wire(doc.get("taxRate", "0"), "taxRate"),
        printed_qty=doc.get("printedQty"),
    )


def table_to_document(table: Table) -> Document:
    return {
        "id": table.id,
        "number": table.number,
        "status": table.status,
        "currentOrderId": table.current_order_id,
    }


def table_from_document(doc: Document) -> Table:
    return Table(
        id=str(doc["id"]),
        number=str(doc.get("number", "")),
        status=str(doc.get("status", "Available")),
        current_order_id=doc.get("currentOrderId") or None,
    )


def order_to_document(order: Order) -> Document:
    return {
        "id": order.id,
        "dailyBillNo": order.daily_bill_no,
        "tableId": order.table_id,
        "captainId": order.captain_id,
        "items": [item_to_document(item) for item in order.items],
        "status": order.status,
        "timestamp": order.timestamp,
        "subTotal": decimal_to_wire(order.sub_total),
        "taxAmount": decimal_to_wire(order.tax_amount),
        "totalAmount": decimal_to_wire(order.total_amount),
        "kotCount": order.kot_count,
        "customerName": order.customer_name,
        "paymentMode": order.payment_mode,
        "cashierName": order.cashier_name,
    }


def order_from_document(doc: Document) -> Order:
    return Order(
        id=str(doc["id"]),
        daily_bill_no=str(doc.get("dailyBillNo") or ""),
        table_id=str(doc.get("tableId", "")),
        captain_id=str(doc.get("captainId") or ""),
        items=tuple(item_from_document(item) for item in doc.get("items", [])),
        status=str(doc.get("status", "Pending")),
        timestamp=str(doc.get("timestamp", "")),
        sub_total=decimal_from_wire(doc.get("subTotal", "0"), "subTotal"),
        tax_amount=decimal_from_wire(doc.get("taxAmount", "0"), "taxAmount"),
        total_amount=decimal_from_wire(doc.get("totalAmount", "0"), "totalAmount"),
        kot_count=int(doc.get("kotCount", 0)),
        customer_name=doc.get("customerName"),
        payment_mode=doc.get("paymentMode"),
        cashier_name=doc.get("cashierName"),
    )


def kot_to_document(kot: KOTRecord) -> Document:
    return {
        "id": kot.id,
        "orderId": kot.order_id,
        "kotNo": kot.kot_no,
        "tableId": kot.table_id,
        "captainName": kot.captain_name,
        "items": [item_to_document(item) for item in kot.items],
        "timestamp": kot.timestamp,
    }


def kot_from_document(doc: Document) -> KOTRecord:
    return KOTRecord(
        id=str(doc["id"]),
        order_id=str(doc.get("orderId", "")),
        kot_no=int(doc.get("kotNo", 0)),
        table_id=str(doc.get("tableId", "")),
        captain_name=str(doc.get("captainName", "")),
        items=tuple(item_from_document(item) for item in doc.get("items", [])),
        timestamp=str(doc.get("timestamp", "")),
    )


def menu_item_to_document(item: MenuItem) -> Document:
    return {
        "id": item.id,
        "name": item.name,
        "price": decimal_to_wire(item.price),
        "groupId": item.group_id,
        "taxId": item.tax_id,
        "foodType": item.food_type,
    }


def menu_item_from_document(doc: Document) -> MenuItem:
    return MenuItem(
        id=str(doc["id"]),
        name=str(doc.get("name", "")),
        price=decimal_from_wire(doc.get("price", "0"), "price"),
        group_id=str(doc.get("groupId", "")),
        tax_id=str(doc.get("taxId", "")),
        food_type=str(doc.get("foodType", "Veg")),
    )


def tax_from_document(doc: Document) -> Tax:
    return Tax(id=str(doc["id"]), name=str(doc.get("name", "")), rate=decimal_from_wire(doc.get("rate", "0"), "rate"))


def group_from_document(doc: Document) -> Group:
    return Group(id=str(doc["id"]), name=str(doc.get("name", "")))


def captain_from_document(doc: Document) -> Captain:
    return Captain(id=str(doc["id"]), name=str(doc.get("name", "")), phone=doc.get("phone"))
