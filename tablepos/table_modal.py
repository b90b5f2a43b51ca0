"""Table number entry modal used to add a table to the floor."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class TableNumberModal(ModalScreen[str | None]):
    """Prompt for the number of a new table."""

    CSS = """
    TableNumberModal {
        align: center middle;
        background: $background 60%;
    }

    #table-number-dialog {
        width: 48;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #table-number-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #table-number-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #table-number-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #table-number-help {
        color: #dddddd;
    }
    """

    def __init__(self, existing: set[str] | None = None) -> None:
        super().__init__()
        self.existing = existing or set()
        self.value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="table-number-dialog"):
            yield Static("Add Table", id="table-number-title")
            yield Static(id="table-number-value")
            yield Static(id="table-number-error")
            yield Static("Digits only. Enter add. Backspace delete. Esc/q cancel.", id="table-number-help")

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

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character and event.character.isdigit():
            if len(self.value) < 3:
                self.value += event.character
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        if not self.value:
            self.error = "Table number is required."
        elif self.value in self.existing:
            self.error = f"Table {self.value} already exists."
        else:
            self.dismiss(self.value)
            return
        self._refresh_content()

    def _refresh_content(self) -> None:
        self.query_one("#table-number-value", Static).update(self.value)
        self.query_one("#table-number-error", Static).update(self.error)
