"""Day book modal: today's bills with re-open and reprint actions."""

from __future__ import annotations

from typing import Iterable

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from tablepos.models import Captain, Order
from tablepos.reports import captain_summary, item_summary, settled_sales
from tablepos.totals import format_money

REPORT_ACTIONS = {"r": "reopen", "enter": "reopen", "b": "bill", "t": "kots"}
MAX_ROWS = 12


class ReportsModal(ModalScreen[tuple[str, Order] | None]):
    """List the day book; dismisses with (action, order) for the app to run."""

    CSS = """
    ReportsModal {
        align: center middle;
        background: $background 60%;
    }

    #reports-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #reports-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #reports-summary {
        color: white;
        margin-bottom: 1;
    }

    #reports-rows {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #reports-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #reports-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        orders: list[Order],
        captains: Iterable[Captain],
        table_numbers: dict[str, str],
        title: str = "Day Book",
    ) -> None:
        super().__init__()
        self.orders = orders
        self.captains = list(captains)
        self.table_numbers = table_numbers
        self.title_text = title
        self.selected = 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="reports-dialog"):
            yield Static(self.title_text, id="reports-title")
            yield Static(self._summary_text(), id="reports-summary")
            yield Static(id="reports-rows")
            yield Static(id="reports-error")
            yield Static("j/k choose. r re-open, b bill, t KOTs. Esc/q close.", id="reports-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        action = REPORT_ACTIONS.get(event.key)
        if action is not None:
            self._choose(action)
            event.stop()
            return

        if not self.orders:
            return
        if event.key in {"j", "down"}:
            self.selected = (self.selected + 1) % len(self.orders)
        elif event.key in {"k", "up"}:
            self.selected = (self.selected - 1) % len(self.orders)
        else:
            return
        self.error = ""
        self._refresh_content()
        event.stop()

    def _choose(self, action: str) -> None:
        if not self.orders:
            self.error = "No bills today."
            self._refresh_content()
            return
        self.dismiss((action, self.orders[self.selected]))

    def _summary_text(self) -> str:
        closed, total = settled_sales(self.orders)
        lines = [f"Sales {format_money(total)} from {len(closed)} bills"]
        items = item_summary(closed)[:3]
        if items:
            lines.append("Top: " + ", ".join(f"{row.name} x{row.quantity}" for row in items))
        captains = [row for row in captain_summary(closed, self.captains) if row.count]
        if captains:
            lines.append("Capt: " + ", ".join(f"{row.name} {format_money(row.sales)}" for row in captains))
        return "\n".join(lines)

    def _row_text(self, idx: int, order: Order) -> str:
        marker = "➤" if idx == self.selected else " "
        number = self.table_numbers.get(order.table_id, order.table_id)
        return f"{marker} {order.daily_bill_no}  T-{number:<4} {order.status:<8} {format_money(order.total_amount):>10}"

    def _refresh_content(self) -> None:
        rows_widget = self.query_one("#reports-rows", Static)
        error_widget = self.query_one("#reports-error", Static)
        start = max(0, min(self.selected - MAX_ROWS + 1, len(self.orders) - MAX_ROWS))
        visible = list(enumerate(self.orders))[start : start + MAX_ROWS]
        rows_widget.update("\n".join(self._row_text(idx, order) for idx, order in visible) or "(no bills today)")
        error_widget.update(self.error or "")
