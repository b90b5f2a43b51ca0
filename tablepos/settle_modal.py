"""Payment mode selection modal shown before settling a bill."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from tablepos.constant import ORDER_BILLED, PAYMENT_MODES
from tablepos.models import Order
from tablepos.totals import format_money


class SettleModal(ModalScreen[str | None]):
    """Pick a payment mode for a billed order."""

    CSS = """
    SettleModal {
        align: center middle;
        background: $background 60%;
    }

    #settle-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #settle-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #settle-modes {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #settle-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #settle-help {
        color: #dddddd;
    }
    """

    def __init__(self, order: Order) -> None:
        super().__init__()
        self.order = order
        self.selected = PAYMENT_MODES.index(order.payment_mode) if order.payment_mode in PAYMENT_MODES else 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="settle-dialog"):
            yield Static(
                f"Settle Bill {self.order.daily_bill_no or '-'}  Total {format_money(self.order.total_amount)}",
                id="settle-title",
            )
            yield Static(id="settle-modes")
            yield Static(id="settle-error")
            yield Static("1-3 or j/k choose. Enter confirm. Esc/q/Ctrl+C cancel.", id="settle-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "q", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key in {"j", "down"}:
            self.selected = (self.selected + 1) % len(PAYMENT_MODES)
        elif event.key in {"k", "up"}:
            self.selected = (self.selected - 1) % len(PAYMENT_MODES)
        elif event.is_printable and event.character and event.character.isdigit():
            choice = int(event.character) - 1
            if not (0 <= choice < len(PAYMENT_MODES)):
                return
            self.selected = choice
        else:
            return
        self.error = ""
        self._refresh_content()
        event.stop()

    def _confirm(self) -> None:
        if self.order.status != ORDER_BILLED:
            self.error = "Print the bill before settling."
            self._refresh_content()
            return
        self.dismiss(PAYMENT_MODES[self.selected])

    def _refresh_content(self) -> None:
        modes_widget = self.query_one("#settle-modes", Static)
        error_widget = self.query_one("#settle-error", Static)
        modes_widget.update(
            "\n".join(
                f"{'➤' if idx == self.selected else ' '} {idx + 1}. {mode}" for idx, mode in enumerate(PAYMENT_MODES)
            )
        )
        error_widget.update(self.error or "")
