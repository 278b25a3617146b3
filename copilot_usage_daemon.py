#!/usr/bin/env python3
"""
Copilot Usage Daemon - headless refresh loop

Runs the same refresh pipeline as the panel without a UI:
1. Find a GitHub token (gh CLI, credential files, saved token)
2. Fetch Copilot quota data
3. Log a one-line summary of the result

Use --once to run a single refresh and print the panel to the terminal.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from settings import add_settings_arguments, apply_settings_arguments, load_settings
from usage_indicator import UsageIndicator
from usage_presenter import DisplayState, UsageState
from usage_render import describe_state, render_state
from version import __version__, __title__


class CopilotUsageDaemon:
    """Background loop polling Copilot usage at the configured interval."""

    DATA_DIR = Path.home() / ".copilot-usage"
    LOG_FILE = DATA_DIR / "daemon.log"

    def __init__(self, debug=False):
        self.running = True
        self.setup_logging(debug=debug)
        self.indicator = UsageIndicator(self.on_state)
        self._stop_event: Optional[asyncio.Event] = None

    def setup_logging(self, debug=False):
        """Set up logging to file and console.

        Args:
            debug: If True, set log level to DEBUG; otherwise INFO
        """
        self.DATA_DIR.mkdir(exist_ok=True)

        level = logging.DEBUG if debug else logging.INFO

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(self.LOG_FILE),
                logging.StreamHandler(sys.stdout)
            ]
        )
        self.logger = logging.getLogger(__name__)

        if debug:
            self.logger.info("Debug logging enabled")

    def on_state(self, state: DisplayState):
        """Sink for display states: just log them."""
        if isinstance(state, UsageState):
            self.logger.info(f"  {describe_state(state)}")
        else:
            self.logger.warning(f"  {describe_state(state)}")

    def current_interval(self) -> int:
        return load_settings().refresh_interval

    def stop(self, signum=None):
        """Handle shutdown signals gracefully."""
        if signum is not None:
            self.logger.info(f"Received signal {signum}, shutting down...")
        self.running = False
        self.indicator.close()
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self):
        """Main daemon loop."""
        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self.stop, signum)

        self.logger.info("=" * 60)
        self.logger.info("Copilot Usage Daemon Started")
        self.logger.info(f"Log file: {self.LOG_FILE}")
        self.logger.info("=" * 60)

        while self.running:
            try:
                await self.indicator.refresh("timer")
            except Exception as e:
                self.logger.error(f"Error in main loop: {e}", exc_info=True)

            interval = self.current_interval()
            if interval <= 0:
                self.logger.info("Auto-refresh disabled (interval 0), exiting")
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        self.indicator.close()
        self.logger.info("Daemon shutdown complete")


async def run_once() -> Optional[DisplayState]:
    """Single refresh; returns whatever the pipeline produced."""
    states = []
    indicator = UsageIndicator(states.append)
    try:
        await indicator.refresh("once")
    finally:
        indicator.close()
    return states[-1] if states else None


def main():
    """Entry point for daemon."""
    parser = argparse.ArgumentParser(
        prog='copilot-usage-daemon',
        description='Background daemon polling GitHub Copilot quota usage',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'{__title__} Daemon {__version__}'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging (verbose output)'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='Refresh once, print the result and exit'
    )
    add_settings_arguments(parser)

    args = parser.parse_args()

    saved = apply_settings_arguments(args)
    if saved is not None:
        print(f"Settings saved (refresh interval {saved.refresh_interval}s, "
              f"token {'set' if saved.manual_token else 'not set'})")
        return 0

    if args.once:
        logging.basicConfig(
            level=logging.DEBUG if args.debug else logging.WARNING,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )
        state = asyncio.run(run_once())
        Console().print(render_state(state))
        return 0 if isinstance(state, UsageState) else 1

    daemon = CopilotUsageDaemon(debug=args.debug)
    asyncio.run(daemon.run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
