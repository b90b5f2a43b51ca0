"""Editable seed catalog and status vocabularies."""

from __future__ import annotations

TABLE_AVAILABLE = "Available"
TABLE_OCCUPIED = "Occupied"
TABLE_BILLING = "Billing"
TABLE_STATUSES = (TABLE_AVAILABLE, TABLE_OCCUPIED, TABLE_BILLING)

ORDER_PENDING = "Pending"
ORDER_BILLED = "Billed"
ORDER_SETTLED = "Settled"
ORDER_STATUSES = (ORDER_PENDING, ORDER_BILLED, ORDER_SETTLED)

PAYMENT_MODES = ("Cash", "UPI", "Card")

FOOD_VEG = "Veg"
FOOD_NON_VEG = "Non-Veg"

# Collection names in the shared document store.
TABLES = "tables"
ORDERS = "orders"
KOTS = "kots"
MENU = "menu"
TAXES = "taxes"
GROUPS = "groups"
CAPTAINS = "captains"

DEFAULT_TABLE_COUNT = 12

DEFAULT_GROUPS: list[dict[str, str]] = [
    {"id": "bfast", "name": "Breakfast"},
    {"id": "starter", "name": "Starters"},
    {"id": "main", "name": "Main Course"},
    {"id": "dessert", "name": "Desserts"},
]

DEFAULT_TAXES: list[dict[str, str]] = [
    {"id": "gst5", "name": "GST 5%", "rate": "5"},
    {"id": "gst12", "name": "GST 12%", "rate": "12"},
    {"id": "exempt", "name": "Exempt", "rate": "0"},
]

DEFAULT_MENU: list[dict[str, str]] = [
    {"id": "1", "name": "Paneer Butter Masala", "price": "250", "groupId": "main", "taxId": "gst5", "foodType": FOOD_VEG},
    {"id": "2", "name": "Chicken Biryani", "price": "320", "groupId": "main", "taxId": "gst5", "foodType": FOOD_NON_VEG},
    {"id": "3", "name": "Masala Dosa", "price": "90", "groupId": "bfast", "taxId": "gst5", "foodType": FOOD_VEG},
    {"id": "4", "name": "Veg Manchurian", "price": "180", "groupId": "starter", "taxId": "gst5", "foodType": FOOD_VEG},
    {"id": "5", "name": "Gulab Jamun", "price": "60", "groupId": "dessert", "taxId": "gst12", "foodType": FOOD_VEG},
]

DEFAULT_CAPTAINS: list[dict[str, str]] = [
    {"id": "w1", "name": "Rahul"},
    {"id": "w2", "name": "Suresh"},
]
