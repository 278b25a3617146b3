#!/usr/bin/env python3
"""
Turn fetch results into what the panel shows.

Pure functions only: every refresh produces one new display state and the
UI replaces whatever it showed before.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from copilot_usage_api import FetchOutcome, UsagePayload, UsageQuota

# Plans with a hard monthly cap on chat messages. Every paid plan (pro,
# pro+, business, enterprise, ...) gets unlimited chat.
CHAT_LIMITED_PLANS = frozenset({"free", "copilot_free"})

NO_CREDENTIALS_HEADING = "GitHub Token Required"
NO_CREDENTIALS_BODY = "No credentials found. Open Settings to add your token."
TOKEN_REJECTED_HEADING = "Token Invalid or Expired"
TOKEN_REJECTED_BODY = "The stored token was rejected. Update it in Settings."
DATA_UNAVAILABLE_HEADING = "Copilot Data Unavailable"
DATA_UNAVAILABLE_BODY = "API returned no usage data. Your token may lack Copilot permissions."


class UsageLevel(Enum):
    """Color band for a usage bar."""
    NOMINAL = "nominal"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"


def usage_level(used_percent: float) -> UsageLevel:
    if used_percent >= 90:
        return UsageLevel.CRITICAL
    if used_percent >= 70:
        return UsageLevel.HIGH
    if used_percent >= 40:
        return UsageLevel.ELEVATED
    return UsageLevel.NOMINAL


def used_percent(percent_remaining: Optional[float]) -> Optional[float]:
    """100 - remaining, clamped to 0..100. None stays None (unlimited)."""
    if percent_remaining is None:
        return None
    return min(100.0, max(0.0, 100.0 - percent_remaining))


def _whole_percent(value: float) -> int:
    # Halves round up (12.5 -> 13), not to even
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class QuotaView:
    """One usage row. used_percent None means unlimited."""
    used_percent: Optional[float] = None
    remaining_percent: Optional[float] = None
    level: UsageLevel = UsageLevel.NOMINAL

    @property
    def unlimited(self) -> bool:
        return self.used_percent is None

    @property
    def used_text(self) -> str:
        if self.unlimited:
            return "unlimited"
        return f"{_whole_percent(self.used_percent)}%"

    @property
    def remaining_text(self) -> str:
        if self.unlimited:
            return ""
        return f"{_whole_percent(self.remaining_percent)}% remaining"


def quota_view(quota: Optional[UsageQuota]) -> QuotaView:
    remaining = quota.percent_remaining if quota is not None else None
    used = used_percent(remaining)
    if used is None:
        return QuotaView()
    return QuotaView(
        used_percent=used,
        remaining_percent=100.0 - used,
        level=usage_level(used),
    )


@dataclass(frozen=True)
class SetupState:
    """No usable token: ask the user to configure one."""
    heading: str
    body: str
    alert: Optional[UsageLevel] = UsageLevel.HIGH


@dataclass(frozen=True)
class UsageState:
    """Quota numbers to display."""
    plan_label: str
    premium: QuotaView
    chat: QuotaView
    chat_visible: bool
    updated_at: datetime
    alert: Optional[UsageLevel] = None

    @property
    def updated_text(self) -> str:
        return f"Updated {self.updated_at.strftime('%H:%M')}"


@dataclass(frozen=True)
class NetworkErrorState:
    """Request failed; keep showing the last good numbers if there are any."""
    detail: str
    last_usage: Optional[UsageState] = None
    alert: Optional[UsageLevel] = UsageLevel.HIGH

    @property
    def error_text(self) -> str:
        return f"Error: {self.detail}"


DisplayState = Union[SetupState, UsageState, NetworkErrorState]


def normalize_plan(plan: Optional[str]) -> str:
    if not plan:
        return ""
    return plan.strip().lower().replace("-", "_")


def is_chat_limited_plan(plan: Optional[str]) -> bool:
    """Whether this plan has a monthly chat cap worth showing."""
    return normalize_plan(plan) in CHAT_LIMITED_PLANS


def format_plan(raw: Optional[str]) -> str:
    """'copilot_free' -> 'Copilot Free', 'business' -> 'Business'."""
    if not raw:
        return ""
    words = raw.replace("_", " ").replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def panel_alert(premium: QuotaView) -> Optional[UsageLevel]:
    """Panel warning dot: only when premium requests are nearly gone."""
    if premium.unlimited:
        return None
    if premium.remaining_percent <= 0:
        return UsageLevel.CRITICAL
    if premium.remaining_percent <= 10:
        return UsageLevel.HIGH
    return None


def present_no_credentials() -> SetupState:
    return SetupState(NO_CREDENTIALS_HEADING, NO_CREDENTIALS_BODY)


def present_usage(payload: UsagePayload, now: Optional[datetime] = None) -> DisplayState:
    """Map a payload to a UsageState, or a setup state if it's empty."""
    if payload.is_empty:
        return SetupState(DATA_UNAVAILABLE_HEADING, DATA_UNAVAILABLE_BODY)

    premium = quota_view(payload.premium)
    return UsageState(
        plan_label=format_plan(payload.plan),
        premium=premium,
        chat=quota_view(payload.chat),
        chat_visible=is_chat_limited_plan(payload.plan),
        updated_at=now or datetime.now(),
        alert=panel_alert(premium),
    )


def present_outcome(outcome: FetchOutcome, last_usage: Optional[UsageState] = None,
                    now: Optional[datetime] = None) -> Optional[DisplayState]:
    """
    Map a FetchOutcome to a display state.

    Args:
        outcome: Result of CopilotUsageAPI.fetch()
        last_usage: Last successfully shown usage, carried into error states
        now: Timestamp for the "Updated" line

    Returns:
        The new display state, or None for a cancelled fetch
    """
    if outcome.kind == FetchOutcome.CANCELLED:
        return None

    if outcome.kind == FetchOutcome.SUCCESS and outcome.payload is not None:
        return present_usage(outcome.payload, now=now)

    if outcome.kind in (FetchOutcome.SUCCESS, FetchOutcome.EMPTY_BODY):
        return SetupState(DATA_UNAVAILABLE_HEADING, DATA_UNAVAILABLE_BODY)

    if outcome.kind == FetchOutcome.AUTH_REJECTED:
        return SetupState(TOKEN_REJECTED_HEADING, TOKEN_REJECTED_BODY)

    if outcome.kind == FetchOutcome.HTTP_ERROR:
        return NetworkErrorState(f"HTTP {outcome.status_code}", last_usage=last_usage)

    return NetworkErrorState(outcome.message or "Unknown error", last_usage=last_usage)
