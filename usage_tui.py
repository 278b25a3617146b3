#!/usr/bin/env python3
"""
Copilot Usage Indicator - terminal panel
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.timer import Timer
from textual.widgets import Footer, Header, Static

from settings import (
    Settings,
    add_settings_arguments,
    apply_settings_arguments,
    load_settings,
    settings_mtime,
)
from token_probes import TokenSource
from usage_indicator import UsageIndicator
from usage_presenter import DisplayState
from usage_render import render_state
from version import __version__, __title__, __description__

# Module-level logger
logger = logging.getLogger(__name__)

LOG_FILE = Path.home() / ".copilot-usage" / "panel.log"


class UsagePanel(Static):
    """Dropdown-style panel showing the current display state."""

    def on_mount(self) -> None:
        self.update(render_state(None))

    def show(self, state: DisplayState) -> None:
        self.update(render_state(state))


class CopilotUsageTUI(App):
    """Copilot Usage Indicator TUI Application."""

    ENABLE_COMMAND_PALETTE = False

    # How often to look for edits to the settings file
    SETTINGS_POLL_INTERVAL = 5

    CSS = """
    Screen {
        background: $surface;
    }

    #panel_column {
        width: 60;
        height: auto;
        margin: 1 2;
    }

    Static {
        margin: 0;
        padding: 0;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("s", "show_sources", "Token Locations"),
    ]

    def __init__(self):
        super().__init__()
        self.user_settings: Settings = load_settings()
        self._settings_mtime = settings_mtime()
        self.auto_refresh_timer: Optional[Timer] = None
        self.indicator = UsageIndicator(self.on_state, settings_provider=self.current_settings)

    def compose(self) -> ComposeResult:
        """Create layout."""
        yield Header(show_clock=True)
        with Vertical(id="panel_column"):
            yield UsagePanel(id="usage_panel")
        yield Footer()

    def on_mount(self) -> None:
        """Start timers and do the first refresh."""
        self.title = __title__
        self.start_timer()
        self.set_interval(self.SETTINGS_POLL_INTERVAL, self.check_settings)
        self.request_refresh("startup")

    def on_app_focus(self) -> None:
        # Coming back to the terminal is our "menu opened"
        self.request_refresh("focus")

    def on_unmount(self) -> None:
        self.stop_timer()
        self.indicator.close()

    def current_settings(self) -> Settings:
        return self.user_settings

    def on_state(self, state: DisplayState) -> None:
        """Sink for the refresh pipeline."""
        self.query_one(UsagePanel).show(state)
        source = self.indicator.last_source
        self.sub_title = f"token: {source.label}" if source else ""

    def request_refresh(self, trigger: str) -> None:
        self.run_worker(self.indicator.refresh(trigger), group="refresh")

    # Timer

    def start_timer(self) -> None:
        self.stop_timer()
        interval = self.user_settings.refresh_interval
        if interval <= 0:
            logger.info("Auto-refresh disabled")
            return
        self.auto_refresh_timer = self.set_interval(interval, lambda: self.request_refresh("timer"))

    def stop_timer(self) -> None:
        if self.auto_refresh_timer is not None:
            self.auto_refresh_timer.stop()
            self.auto_refresh_timer = None

    def check_settings(self) -> None:
        """Reload settings when the file changes (e.g. --set-token from another shell)."""
        mtime = settings_mtime()
        if mtime == self._settings_mtime:
            return
        self._settings_mtime = mtime

        previous = self.user_settings
        self.user_settings = load_settings()

        if self.user_settings.refresh_interval != previous.refresh_interval:
            self.start_timer()
        if self.user_settings.github_token != previous.github_token:
            self.request_refresh("settings")

    # Actions

    def action_refresh(self) -> None:
        """Refresh now."""
        self.request_refresh("manual")

    def action_show_sources(self) -> None:
        """List where tokens are looked for, in order."""
        lines = [f"{n}. {source.label}: {source.value}" for n, source in enumerate(TokenSource, 1)]
        self.notify("\n".join(lines), title="Token discovery order", timeout=10)


def main():
    """Run the TUI application."""
    parser = argparse.ArgumentParser(
        prog='copilot-usage',
        description=__description__,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'{__title__} {__version__}'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help=f'Enable debug logging to {LOG_FILE}'
    )
    add_settings_arguments(parser)

    args = parser.parse_args()

    saved = apply_settings_arguments(args)
    if saved is not None:
        print(f"Settings saved (refresh interval {saved.refresh_interval}s, "
              f"token {'set' if saved.manual_token else 'not set'})")
        return 0

    # The terminal belongs to the UI, so logs go to a file
    LOG_FILE.parent.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        filename=LOG_FILE
    )

    # Run the TUI
    app = CopilotUsageTUI()
    try:
        app.run()
    finally:
        app.indicator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
