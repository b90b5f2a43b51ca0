"""Master data: seed catalog, validation and id-indexed lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from tablepos.constant import (
    CAPTAINS,
    DEFAULT_CAPTAINS,
    DEFAULT_GROUPS,
    DEFAULT_MENU,
    DEFAULT_TABLE_COUNT,
    DEFAULT_TAXES,
    GROUPS,
    MENU,
    TABLES,
    TAXES,
)
from tablepos.documents import (
    captain_from_document,
    decimal_from_wire,
    group_from_document,
    menu_item_from_document,
    menu_item_to_document,
    table_from_document,
    table_to_document,
    tax_from_document,
)
from tablepos.errors import ValidationError
from tablepos.models import Captain, Group, MenuItem, Table, Tax
from tablepos.persistence import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Id-indexed catalog snapshot each terminal resolves references against."""

    menu: dict[str, MenuItem] = field(default_factory=dict)
    taxes: dict[str, Tax] = field(default_factory=dict)
    groups: dict[str, Group] = field(default_factory=dict)
    captains: dict[str, Captain] = field(default_factory=dict)

    def tax_rate_for(self, item: MenuItem) -> Decimal:
        tax = self.taxes.get(item.tax_id)
        return tax.rate if tax is not None else Decimal("0")

    def captain_name(self, captain_id: str) -> str:
        captain = self.captains.get(captain_id)
        return captain.name if captain is not None else "N/A"

    def search(self, query: str, group_id: str | None = None) -> list[MenuItem]:
        q = query.strip().lower()
        return [
            item
            for item in self.menu.values()
            if (group_id is None or item.group_id == group_id) and q in item.name.lower()
        ]


def load_catalog(store: DocumentStore) -> Catalog:
    return Catalog(
        menu={doc["id"]: menu_item_from_document(doc) for doc in store.list_all(MENU)},
        taxes={doc["id"]: tax_from_document(doc) for doc in store.list_all(TAXES)},
        groups={doc["id"]: group_from_document(doc) for doc in store.list_all(GROUPS)},
        captains={doc["id"]: captain_from_document(doc) for doc in store.list_all(CAPTAINS)},
    )


def validate_menu_item(raw: dict) -> MenuItem:
    """Build a MenuItem from form input or raise before anything is written."""
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ValidationError("Please enter Name and Price")
    price_raw = raw.get("price")
    if price_raw in (None, ""):
        raise ValidationError("Please enter Name and Price")
    price = decimal_from_wire(price_raw, "price")
    if price <= 0:
        raise ValidationError("Price must be greater than zero")
    item_id = str(raw.get("id") or "").strip() or name.lower().replace(" ", "_")
    return MenuItem(
        id=item_id,
        name=name,
        price=price,
        group_id=str(raw.get("groupId") or ""),
        tax_id=str(raw.get("taxId") or ""),
        food_type=str(raw.get("foodType") or "Veg"),
    )


def save_menu_item(store: DocumentStore, raw: dict) -> MenuItem:
    item = validate_menu_item(raw)
    store.put(MENU, item.id, menu_item_to_document(item))
    return item


def add_table(store: DocumentStore, number: str) -> Table:
    """Create an Available table; duplicate or blank numbers are rejected."""
    number = str(number or "").strip()
    if not number:
        raise ValidationError("Table number is required")
    existing = {str(doc.get("number")) for doc in store.list_all(TABLES)}
    if number in existing:
        raise ValidationError("Table number already exists")
    table = Table(id=f"T{number}", number=number)
    store.put(TABLES, table.id, table_to_document(table))
    return table


def load_tables(store: DocumentStore) -> dict[str, Table]:
    return {doc["id"]: table_from_document(doc) for doc in store.list_all(TABLES)}


def seed_defaults(store: DocumentStore) -> list[str]:
    """Fill empty catalog collections with defaults; returns what was seeded."""
    seeded: list[str] = []
    if not store.list_all(TABLES):
        for idx in range(1, DEFAULT_TABLE_COUNT + 1):
            add_table(store, str(idx))
        seeded.append(TABLES)

    for collection, rows in ((GROUPS, DEFAULT_GROUPS), (TAXES, DEFAULT_TAXES), (MENU, DEFAULT_MENU), (CAPTAINS, DEFAULT_CAPTAINS)):
        if store.list_all(collection):
            continue
        for row in rows:
            if collection == MENU:
                save_menu_item(store, row)
            else:
                store.put(collection, row["id"], dict(row))
        seeded.append(collection)

    if seeded:
        logger.info("seeded collections=%s", ",".join(seeded))
    return seeded
