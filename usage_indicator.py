#!/usr/bin/env python3
"""
Refresh pipeline behind the panel: find a token, fetch usage, present it.

The UI (Textual panel or the headless daemon) owns the timer and calls
refresh(); this class owns the teardown flag and hands exactly one display
state to the sink per completed refresh.
"""

import logging
from typing import Callable, List, Optional

from copilot_usage_api import CopilotUsageAPI
from settings import Settings, load_settings
from token_probes import TokenProbe, TokenSource, default_probes
from token_resolver import CancelToken, TokenResolver
from usage_presenter import (
    DisplayState,
    NetworkErrorState,
    UsageState,
    present_no_credentials,
    present_outcome,
)

# Module-level logger
logger = logging.getLogger(__name__)

Sink = Callable[[DisplayState], None]


class UsageIndicator:
    """
    One indicator instance.

    Overlapping refreshes are serialized: a refresh requested while another
    is running is folded into a single follow-up run after it finishes, so
    the display always ends on the newest data and requests never race.
    """

    def __init__(self, sink: Sink,
                 settings_provider: Callable[[], Settings] = load_settings,
                 probes_factory: Callable[[Settings], List[TokenProbe]] = default_probes,
                 api: Optional[CopilotUsageAPI] = None):
        self.sink = sink
        self.settings_provider = settings_provider
        self.probes_factory = probes_factory
        self.api = api or CopilotUsageAPI()
        self.cancel_token = CancelToken()

        self.last_state: Optional[DisplayState] = None
        self.last_usage: Optional[UsageState] = None
        self.last_source: Optional[TokenSource] = None
        self.refresh_count = 0

        self._in_flight = False
        self._pending = False

    @property
    def closed(self) -> bool:
        return self.cancel_token.cancelled

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def refresh(self, trigger: str = "manual") -> Optional[DisplayState]:
        """
        Run a refresh cycle, or queue one if a cycle is already running.

        Args:
            trigger: What asked for the refresh (timer, menu, settings, ...)

        Returns:
            The state handed to the sink, or None if the request was queued
            or the indicator was closed meanwhile
        """
        if self.closed:
            return None

        if self._in_flight:
            logger.debug(f"Refresh ({trigger}) requested while busy, queued")
            self._pending = True
            return None

        self._in_flight = True
        try:
            state = await self._cycle(trigger)
            while self._pending and not self.closed:
                self._pending = False
                state = await self._cycle("queued")
            return state
        finally:
            self._in_flight = False
            self._pending = False

    async def _cycle(self, trigger: str) -> Optional[DisplayState]:
        self.refresh_count += 1
        logger.info(f"Refresh #{self.refresh_count} ({trigger})")

        try:
            state = await self._compute_state()
        except Exception as e:
            logger.error(f"Error during refresh: {e}", exc_info=True)
            state = NetworkErrorState(str(e) or type(e).__name__, last_usage=self.last_usage)

        if state is None or self.closed:
            return None

        self._publish(state)
        return state

    async def _compute_state(self) -> Optional[DisplayState]:
        settings = self.settings_provider()
        resolver = TokenResolver(self.probes_factory(settings))

        result = await resolver.resolve(self.cancel_token)
        if result is None:
            return None

        if not result.found:
            self.last_source = None
            return present_no_credentials()

        self.last_source = result.source
        outcome = await self.api.fetch(result.token, self.cancel_token)
        return present_outcome(outcome, last_usage=self.last_usage)

    def _publish(self, state: DisplayState):
        if isinstance(state, UsageState):
            self.last_usage = state
        self.last_state = state

        try:
            self.sink(state)
        except Exception as e:
            logger.error(f"Display update failed: {e}", exc_info=True)

    def close(self):
        """Tear down: no sink calls after this, in-flight work is dropped."""
        if self.closed:
            return
        logger.debug("Closing usage indicator")
        self.cancel_token.cancel()
        self.api.close()
