from __future__ import annotations

from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DirectoryTree, Footer, Header, Log, OptionList, Static
from textual.widgets.option_list import Option

from wgpanel.domain.models import SetupStatus
from wgpanel.services.task_scheduler import TaskScheduler
from wgpanel.ui.app_state import (
    MENU_ITEMS,
    MENU_LABELS,
    BrowserCancelled,
    CursorMoved,
    MenuActivated,
    PanelState,
    PanelStore,
    PathSelected,
    describe_session,
    is_disabled,
)
from wgpanel.ui.panel_controller import PanelController


def setup_notice(status: SetupStatus | None) -> tuple[str, ...]:
    if status is None or not status.needs_setup:
        return ()
    return (
        "Setup needed, missing: " + ", ".join(status.missing_files),
        "Run 'wgpanel setup --prod <file> --nonprod <file>' with administrator rights.",
    )


class StatusPanel(Static):
    DEFAULT_CSS = """
    StatusPanel {
        padding: 1 1;
        border: round $accent;
        height: auto;
    }
    """

    def show_state(self, state: PanelState) -> None:
        lines = describe_session(state.session)
        if state.loading:
            lines.append("[yellow]Working...[/yellow]")
        self.update("\n".join(lines))


class WgPanelApp(App):
    """Terminal front-end for the prod/nonprod WireGuard sessions."""

    TITLE = "WireGuard Panel"
    CSS = """
    #body {
        height: 1fr;
    }
    #menu {
        width: 36;
        border: round $accent;
    }
    #side {
        width: 1fr;
    }
    #browser {
        height: 1fr;
        border: round $warning;
    }
    #config-view {
        height: auto;
        max-height: 20;
        border: round $secondary;
        padding: 0 1;
    }
    #message {
        height: auto;
        padding: 0 1;
    }
    #activity {
        height: 10;
        border: round $accent;
    }
    """
    BINDINGS = [
        Binding("escape", "cancel_browser", "Cancel"),
        Binding("q", "menu_quit", "Quit"),
        Binding("r", "menu_refresh", "Refresh"),
    ]

    def __init__(
        self,
        scheduler: TaskScheduler,
        *,
        poll_interval_ms: int = 80,
        browse_root: Path | None = None,
        setup_status: SetupStatus | None = None,
    ) -> None:
        super().__init__()
        self.store = PanelStore(PanelState(activity=setup_notice(setup_status)))
        self.controller = PanelController(self.store, scheduler)
        self.poll_interval_ms = poll_interval_ms
        self.browse_root = browse_root or Path.home()
        self._rendered_activity: tuple[str, ...] = ()

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="body"):
            yield OptionList(
                *(Option(MENU_LABELS[item], id=item) for item in MENU_ITEMS),
                id="menu",
            )
            with Vertical(id="side"):
                yield StatusPanel(id="status")
                yield Static(id="message")
                yield Static(id="config-view")
                yield DirectoryTree(str(self.browse_root), id="browser")
        yield Log(id="activity")
        yield Footer()

    def on_mount(self) -> None:
        self.store.subscribe(self._render_state)
        self._render_state(self.store.snapshot())
        self.set_interval(self.poll_interval_ms / 1000, self._drain_results)
        self.controller.start()

    def on_unmount(self) -> None:
        self.store.unsubscribe(self._render_state)

    def _drain_results(self) -> None:
        self.controller.tick()

    def on_option_list_option_highlighted(self, event: OptionList.OptionHighlighted) -> None:
        if event.option_index is None:
            return
        self.controller.handle(CursorMoved(event.option_index - self.store.snapshot().cursor))

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.controller.handle(MenuActivated(event.option.id))

    def on_directory_tree_file_selected(self, event: DirectoryTree.FileSelected) -> None:
        self.controller.handle(PathSelected(str(event.path)))

    def action_cancel_browser(self) -> None:
        self.controller.handle(BrowserCancelled())

    def action_menu_quit(self) -> None:
        self.controller.handle(MenuActivated("quit"))

    def action_menu_refresh(self) -> None:
        self.controller.handle(MenuActivated("refresh"))

    def _render_state(self, state: PanelState) -> None:
        self.query_one("#status", StatusPanel).show_state(state)
        self.query_one("#message", Static).update(state.message)

        menu = self.query_one("#menu", OptionList)
        for item in MENU_ITEMS:
            if is_disabled(state, item) or (state.loading and item != "quit"):
                menu.disable_option(item)
            else:
                menu.enable_option(item)

        browser = self.query_one("#browser", DirectoryTree)
        browser.display = state.browsing
        if state.browsing:
            browser.focus()
        elif self.focused is browser:
            menu.focus()

        config_view = self.query_one("#config-view", Static)
        config_view.display = bool(state.config_view)
        config_view.update(state.config_view)

        if state.activity != self._rendered_activity:
            log = self.query_one("#activity", Log)
            log.clear()
            log.write_lines(state.activity)
            self._rendered_activity = state.activity

        if state.quit_requested:
            self.exit()
