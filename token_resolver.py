#!/usr/bin/env python3
"""
Walk the token probes in priority order until one of them finds a token.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from token_probes import TokenProbe, TokenSource

# Module-level logger
logger = logging.getLogger(__name__)

NO_CREDENTIALS_MESSAGE = "No credentials found. Open Settings to add your token."


class CancelToken:
    """
    Cooperative teardown flag.

    Whoever owns a refresh sets it when it goes away; every async step checks
    it after resuming and stops before doing anything visible.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ResolveResult:
    """Outcome of a resolve pass. token is None when nothing was found."""
    token: Optional[str] = None
    source: Optional[TokenSource] = None
    message: str = ""

    @property
    def found(self) -> bool:
        return self.token is not None


class TokenResolver:
    """
    Runs probes one after another, first non-empty token wins.

    Probes are awaited sequentially rather than raced: the cheap, most likely
    sources come first and later ones usually never run. Nothing is cached,
    every call starts from the top of the list.
    """

    RESOLVING = "resolving"
    RESOLVED = "resolved"

    def __init__(self, probes: Sequence[TokenProbe]):
        self.probes: List[TokenProbe] = list(probes)
        self.state = self.RESOLVED

    async def resolve(self, cancel: Optional[CancelToken] = None) -> Optional[ResolveResult]:
        """
        Find a token.

        Args:
            cancel: Teardown flag checked after every probe

        Returns:
            ResolveResult with the token and its source, a ResolveResult with
            token None when every probe came up empty, or None if cancelled
            mid-way (the caller must then do nothing).
        """
        cancel = cancel or CancelToken()
        self.state = self.RESOLVING
        try:
            for probe in self.probes:
                if cancel.cancelled:
                    return None

                token = await probe.run()

                if cancel.cancelled:
                    logger.debug("Token resolution cancelled")
                    return None

                if token:
                    logger.info(f"Using token from {probe.source.label}")
                    return ResolveResult(token=token, source=probe.source)

            logger.info("No GitHub token found in any known location")
            return ResolveResult(message=NO_CREDENTIALS_MESSAGE)
        finally:
            self.state = self.RESOLVED
