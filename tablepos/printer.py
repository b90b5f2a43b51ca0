"""Thermal printer integration (ESC/POS over USB, text rasterized with Pillow)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from time import sleep

from tablepos.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from tablepos.kot import TicketRenderRequest
from tablepos.models import Order
from tablepos.rendering import bill_lines, kot_lines

logger = logging.getLogger(__name__)

# Rule lines are printed as solid bars instead of dashes.
_RULE_HEIGHT_PX = 12
_RULE_THICKNESS_PX = 3
_RULE_STRIPE_HEIGHT_PX = 2
_RULE_PAUSE_SECONDS = 0.05
_LINE_EXTRA_PX = 8
_TAIL_SPACER_PX = 70
_FONT_OVERRIDE_ENV = "TABLEPOS_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)


def resolve_printer_font_path() -> str:
    """
    Resolve a monospace printer font path.

    Resolution order:
    1. TABLEPOS_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate

    raise RuntimeError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.otf file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def _is_rule(line: str) -> bool:
    return bool(line) and set(line) == {"-"}


def render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    probe = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(probe).textbbox((0, 0), text or " ", font=font)
    text_height = bbox[3] - bbox[1]
    canvas_height = max(PRINTER_FONT_SIZE, text_height) + _LINE_EXTRA_PX

    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_rule() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _RULE_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = max(0, (_RULE_HEIGHT_PX - _RULE_THICKNESS_PX) // 2)
    draw.rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _RULE_THICKNESS_PX - 1), fill=0)
    return img


def _print_rule(printer: object) -> None:
    """
    Print a rule in short stripes with tiny pauses.

    Keeps instantaneous heat low so the bar stays crisp on thermal paper.
    """
    rule = _render_rule()
    for top in range(0, rule.height, _RULE_STRIPE_HEIGHT_PX):
        bottom = min(rule.height, top + _RULE_STRIPE_HEIGHT_PX)
        printer.image(rule.crop((0, top, PRINTER_WIDTH_PX, bottom)))
        if bottom < rule.height:
            sleep(_RULE_PAUSE_SECONDS)


def print_lines(lines: list[str]) -> None:
    """Print pre-laid-out text lines and cut the paper."""
    if not lines:
        return

    try:
        from escpos.printer import Usb
        from PIL import Image, ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    for line in lines:
        if _is_rule(line):
            _print_rule(printer)
            continue
        printer.image(render_line(line, font))
    printer.image(Image.new("1", (PRINTER_WIDTH_PX, _TAIL_SPACER_PX), color=1))
    printer.cut()
    logger.info("printed lines=%d", len(lines))


def print_kot(request: TicketRenderRequest, table_number: str) -> None:
    print_lines(kot_lines(request, table_number))


def print_bill(order: Order, table_number: str, captain_name: str) -> None:
    print_lines(bill_lines(order, table_number, captain_name))
