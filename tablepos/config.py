"""Runtime configuration defaults for persistence, sync and printing."""

from __future__ import annotations

import os
import socket

DB_PATH = os.environ.get("TABLEPOS_DB_PATH", "data/tablepos.db")
TERMINAL_ID = os.environ.get("TABLEPOS_TERMINAL_ID", "") or socket.gethostname()
DEBUG_LOG_PATH = os.environ.get("TABLEPOS_DEBUG_LOG", "/tmp/tablepos-debug.log")

# How often a terminal checks the shared store for writes from other terminals.
POLL_INTERVAL_SECONDS = 1.0

BILL_NUMBER_WIDTH = 5
ORDER_ID_PREFIX = "ORD-"

BUSINESS_NAME = os.environ.get("TABLEPOS_BUSINESS_NAME", "Zesta Garden Restaurant")
BUSINESS_ADDRESS = "123 Food Street, MG Road, Pune"
BUSINESS_PHONE = "+91 9876543210"
BUSINESS_GSTIN = "27AAAZS0000A1Z5"
BUSINESS_THANK_YOU = "Visit Us Again!"

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 24
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNSMono.ttf"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_LINE_CHARS = 32
