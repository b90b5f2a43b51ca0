"""Main Textual app class."""

from __future__ import annotations

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from tablepos.config import POLL_INTERVAL_SECONDS
from tablepos.context import TerminalContext
from tablepos.errors import PersistenceError, TablePosError
from tablepos.kot import render_request
from tablepos.masters import add_table
from tablepos.models import MenuItem, Order, OrderItem, Table
from tablepos.printer import check_printer_dependencies, print_bill, print_kot
from tablepos.rendering import badge_style, format_cart_line, format_table_label
from tablepos.reports import day_book, load_orders, reopen_order, reprint_tickets
from tablepos.reports_modal import ReportsModal
from tablepos.settle_modal import SettleModal
from tablepos.sync import TableSession
from tablepos.table_modal import TableNumberModal
from tablepos.totals import format_money

logger = logging.getLogger(__name__)


class PosApp(App):
    """A Textual point-of-sale terminal sharing tables with other terminals."""

    TITLE = "Table POS"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #left-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #search-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #results {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #left-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #totals {
        height: 3;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    query = reactive("")
    selected_index = reactive(0)
    left_selected_index = reactive(0)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "confirm", "Open / add"),
        ("backspace", "backspace_query", "Delete query char"),
        ("escape", "leave_table", "Back to floor"),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, ctx: TerminalContext) -> None:
        super().__init__()
        self.ctx = ctx
        self.session: TableSession | None = None
        self.system_status = ""
        self.printer_ready = False
        self.sub_title = f"Terminal {ctx.terminal_id}"

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="left-pane"):
                yield Static("Tables", id="left-title", classes="pane-title")
                yield Static("(no tables)", id="left-list")
                yield Static(id="totals")
            with Vertical(id="search-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")

    def on_mount(self) -> None:
        self.printer_ready, msg = check_printer_dependencies()
        self.system_status = msg
        self.ctx.pusher.on_error = self._on_push_error
        self.ctx.on_floor_change = lambda _floor: self._refresh_all()
        poll = getattr(self.ctx.store, "poll", None)
        if poll is not None:
            self.set_interval(POLL_INTERVAL_SECONDS, self._poll_store)
        logger.debug("on_mount printer_status=%r", msg)
        self._refresh_all()

    def _poll_store(self) -> None:
        try:
            self.ctx.store.poll()
        except PersistenceError as exc:
            self._set_status(str(exc))

    def _on_push_error(self, label: str, exc: Exception) -> None:
        # Runs on the pusher thread.
        self.call_from_thread(self._set_status, f"Sync failed ({label}): {exc}")

    def _set_status(self, message: str) -> None:
        self.system_status = message
        self._refresh_search()

    # -- keyboard --------------------------------------------------------

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        if self.session is not None and self.input_state == "normal" and event.key in {"plus", "equals_sign", "minus"}:
            self._change_selected_quantity(-1 if event.key == "minus" else 1)
            event.stop()
            return

        if not event.is_printable or len(event.character or "") != 1 or not event.character.isalnum():
            return

        key = event.character.lower()
        if self.input_state == "normal":
            if key == "j":
                self._move_left_selection(1)
            elif key == "k":
                self._move_left_selection(-1)
            elif self.session is None and key == "r":
                self._open_reports()
            elif self.session is None and key == "a":
                self.push_screen(TableNumberModal({t.number for t in self.ctx.floor.values()}), self._on_table_number)
            elif self.session is None:
                return
            elif key == "s":
                self.input_state = "active"
                self.query = ""
                self.selected_index = 0
                self._refresh_search()
            elif key == "d":
                self._remove_selected_line()
            elif key == "c":
                self._cycle_captain()
            elif key == "t":
                self._issue_kot()
            elif key == "b":
                self._issue_bill()
            elif key == "p":
                self._open_settle()
            else:
                return
            event.stop()
            return

        self.query += event.character
        self.selected_index = 0
        self._refresh_search()
        event.stop()

    def action_cancel_active_mode(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_confirm(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state == "active":
            self._add_selected_result()
            return
        if self.session is None:
            self._open_selected_table()

    def action_backspace_query(self) -> None:
        if self.input_state != "active" or not self.query:
            return
        self.query = self.query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_leave_table(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.session is None:
            return
        if self.input_state == "active":
            self.action_cancel_active_mode()
            return
        self._leave_table()

    def _leave_table(self) -> None:
        logger.debug("leave_table table=%s", self.session.table_id)
        self.ctx.leave_table()
        self.session = None
        self.left_selected_index = 0
        self._refresh_all()

    # -- table operations ------------------------------------------------

    def _floor_rows(self) -> list[Table]:
        return sorted(self.ctx.floor.values(), key=lambda t: (len(t.number), t.number))

    def _open_selected_table(self) -> None:
        rows = self._floor_rows()
        if not rows:
            return
        table = rows[min(self.left_selected_index, len(rows) - 1)]
        try:
            self.session = self.ctx.open_table(table.id)
        except TablePosError as exc:
            self._set_status(str(exc))
            return
        self.session.on_update = lambda _session: self._refresh_all()
        self.left_selected_index = 0
        self.system_status = f"Opened T-{table.number}"
        self._refresh_all()

    def _add_selected_result(self) -> None:
        results = self._filtered_results()
        if not results or self.session is None:
            return
        item = results[self.selected_index]
        self._guarded(lambda: self.session.add_item(item.id))
        self.left_selected_index = max(0, len(self.session.draft.items) - 1)
        self._refresh_all()

    def _selected_line(self) -> OrderItem | None:
        if self.session is None or not self.session.draft.items:
            return None
        items = self.session.draft.items
        return items[min(self.left_selected_index, len(items) - 1)]

    def _change_selected_quantity(self, delta: int) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._guarded(lambda: self.session.change_quantity(line.id, delta))
        self._refresh_all()

    def _remove_selected_line(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        self._guarded(lambda: self.session.set_quantity(line.id, 0))
        self._refresh_all()

    def _cycle_captain(self) -> None:
        captains = list(self.ctx.catalog.captains)
        if not captains or self.session is None:
            return
        current = self.session.draft.captain_id
        nxt = captains[(captains.index(current) + 1) % len(captains)] if current in captains else captains[0]
        self._guarded(lambda: self.session.set_captain(nxt))
        self._refresh_all()

    def _issue_kot(self) -> None:
        record = self._guarded(self.session.request_kot)
        if record is None:
            return
        message = f"KOT #{record.kot_no} sent"
        if self.printer_ready:
            try:
                print_kot(render_request(record), self.session.table.number)
            except Exception as exc:
                message = f"KOT #{record.kot_no} saved but print failed: {exc}"
                logger.warning("kot_print_failed kot_id=%s error=%r", record.id, exc)
        self._set_status(message)
        self._refresh_all()

    def _issue_bill(self) -> None:
        order = self._guarded(self.session.request_bill)
        if order is None:
            return
        message = f"Bill {order.daily_bill_no} ready"
        if self.printer_ready:
            try:
                print_bill(order, self.session.table.number, self.ctx.catalog.captain_name(order.captain_id))
            except Exception as exc:
                message = f"Bill {order.daily_bill_no} saved but print failed: {exc}"
                logger.warning("bill_print_failed order_id=%s error=%r", order.id, exc)
        self._set_status(message)
        self._refresh_all()

    def _open_settle(self) -> None:
        if self.session is None or self.session.order is None:
            return
        self.push_screen(SettleModal(self.session.order), self._on_settle_choice)

    def _on_settle_choice(self, payment_mode: str | None) -> None:
        if payment_mode is None or self.session is None:
            return
        order = self._guarded(lambda: self.session.settle(payment_mode=payment_mode))
        if order is None:
            return
        self.system_status = f"Settled {order.daily_bill_no} ({payment_mode})"
        self._leave_table()

    # -- floor operations ------------------------------------------------

    def _on_table_number(self, number: str | None) -> None:
        if number is None:
            return
        table = self._guarded(lambda: add_table(self.ctx.store, number))
        if table is None:
            return
        logger.info("table_added table=%s", table.id)
        self._set_status(f"Added T-{table.number}")

    def _table_number(self, table_id: str) -> str:
        table = self.ctx.floor.get(table_id)
        return table.number if table is not None else table_id

    def _open_reports(self) -> None:
        day = self.ctx.today()
        orders = self._guarded(lambda: day_book(load_orders(self.ctx.store), day))
        if orders is None:
            return
        numbers = {table_id: table.number for table_id, table in self.ctx.floor.items()}
        modal = ReportsModal(orders, self.ctx.catalog.captains.values(), numbers, title=f"Day Book {day.isoformat()}")
        self.push_screen(modal, self._on_report_choice)

    def _on_report_choice(self, choice: tuple[str, Order] | None) -> None:
        if choice is None:
            return
        action, order = choice
        if action == "reopen":
            self._reopen_order(order)
        elif action == "bill":
            self._reprint_bill(order)
        elif action == "kots":
            self._reprint_kots(order)

    def _reopen_order(self, order: Order) -> None:
        reopened = self._guarded(lambda: reopen_order(self.ctx.store, order.id))
        if reopened is None:
            return
        self._set_status(f"Bill {reopened.daily_bill_no} re-opened on T-{self._table_number(reopened.table_id)}")

    def _reprint_bill(self, order: Order) -> None:
        if not self.printer_ready:
            self._set_status(f"Cannot reprint bill {order.daily_bill_no}: {self.system_status}")
            return
        message = f"Bill {order.daily_bill_no} reprinted"
        try:
            print_bill(order, self._table_number(order.table_id), self.ctx.catalog.captain_name(order.captain_id))
        except Exception as exc:
            message = f"Bill {order.daily_bill_no} reprint failed: {exc}"
            logger.warning("bill_reprint_failed order_id=%s error=%r", order.id, exc)
        self._set_status(message)

    def _reprint_kots(self, order: Order) -> None:
        tickets = self._guarded(lambda: reprint_tickets(self.ctx.store, order.id))
        if tickets is None:
            return
        if not tickets:
            self._set_status(f"No KOTs for bill {order.daily_bill_no}")
            return
        if not self.printer_ready:
            self._set_status(f"Cannot reprint KOTs: {self.system_status}")
            return
        number = self._table_number(order.table_id)
        try:
            for ticket in tickets:
                print_kot(ticket, number)
        except Exception as exc:
            self._set_status(f"KOT #{ticket.kot_no} reprint failed: {exc}")
            logger.warning("kot_reprint_failed order_id=%s kot_no=%s error=%r", order.id, ticket.kot_no, exc)
            return
        self._set_status(f"Reprinted {len(tickets)} KOTs for bill {order.daily_bill_no}")

    def _guarded(self, op):
        """Run an operation, surfacing refusals in the status line."""
        try:
            return op()
        except TablePosError as exc:
            self._set_status(str(exc))
            return None

    # -- rendering -------------------------------------------------------

    def _filtered_results(self) -> list[MenuItem]:
        return self.ctx.catalog.search(self.query)

    def _refresh_all(self) -> None:
        self._refresh_left()
        self._refresh_search()

    def _move_left_selection(self, delta: int) -> None:
        total = len(self.session.draft.items) if self.session is not None else len(self.ctx.floor)
        if total == 0:
            return
        self.left_selected_index = (self.left_selected_index + delta) % total
        self._refresh_left()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_left(self) -> None:
        try:
            title = self.query_one("#left-title", Static)
            list_widget = self.query_one("#left-list", Static)
            totals_widget = self.query_one("#totals", Static)
        except NoMatches:
            return

        if self.session is None:
            title.update("Tables")
            totals_widget.update("")
            labels = [format_table_label(table) for table in self._floor_rows()]
            empty = "(no tables)"
        else:
            table = self.session.table
            header = Text(f"T-{table.number} ")
            header.append(f" {table.status} ", style=badge_style(table.status))
            captain = self.ctx.catalog.captain_name(self.session.draft.captain_id)
            header.append(f"  Capt: {captain}")
            if self.session.order is not None and self.session.order.daily_bill_no:
                header.append(f"  Bill {self.session.order.daily_bill_no}")
            if self.session.latched:
                header.append("  SETTLED (read only)", style="bold red")
            title.update(header)
            order = self.session.order
            if order is not None and order.items == self.session.draft.items:
                totals_widget.update(
                    f"Sub {format_money(order.sub_total)}  GST {format_money(order.tax_amount)}\n"
                    f"TOTAL {format_money(order.total_amount)}  KOTs {order.kot_count}"
                )
            else:
                totals_widget.update("")
            labels = [format_cart_line(item) for item in self.session.draft.items]
            empty = "(cart empty)"

        if not labels:
            list_widget.update(empty)
            return

        if self.left_selected_index >= len(labels):
            self.left_selected_index = len(labels) - 1

        start, end = self._window_bounds(len(labels), self._visible_rows(list_widget), self.left_selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.left_selected_index else "  ")
            lines.append_text(labels[idx])
        if end < len(labels):
            lines.append("\n⋮", style="dim")
        list_widget.update(lines)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        status = self.system_status or "Ready"
        if self.session is None:
            bar.update(f"j/k select, Enter open table. a add table  r reports. Ctrl+Q quit.\n{status}")
            return
        if self.input_state == "normal":
            bar.update(f"s search  +/- qty  d del  c capt  t KOT  b bill  p settle  Esc back\n{status}")
            return
        text = Text()
        text.append("MENU", style=badge_style("Available"))
        text.append(f": {self.query or ''}")
        bar.update(text)

    def _refresh_results(self, results: list[MenuItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update("")
            return

        if not results:
            results_widget.update("No results")
            return

        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = self._window_bounds(len(results), self._visible_rows(results_widget), self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(f"{pointer}{results[idx].name}  {format_money(results[idx].price)}")
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)
