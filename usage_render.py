#!/usr/bin/env python3
"""
rich renderables for display states, shared by the TUI panel and `--once`.
"""

from typing import Optional

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from usage_presenter import (
    DisplayState,
    NetworkErrorState,
    QuotaView,
    SetupState,
    UsageLevel,
    UsageState,
)

BAR_LENGTH = 40

LEVEL_COLORS = {
    UsageLevel.NOMINAL: "green",
    UsageLevel.ELEVATED: "yellow",
    UsageLevel.HIGH: "dark_orange",
    UsageLevel.CRITICAL: "red",
}


def render_bar(view: QuotaView, bar_len: int = BAR_LENGTH) -> Text:
    """'████░░░░' bar colored by usage level; empty bar when unlimited."""
    pct = view.used_percent or 0.0
    filled = min(int((pct / 100) * bar_len), bar_len)
    bar = Text("█" * filled, style=LEVEL_COLORS[view.level])
    bar.append("░" * (bar_len - filled), style="dim")
    return bar


def render_quota_row(title: str, view: QuotaView) -> Group:
    header = Table.grid(expand=True)
    header.add_column(justify="left")
    header.add_column(justify="right")
    header.add_row(f"[bold]{title}[/bold]", view.used_text)

    lines = [header, render_bar(view)]
    if view.remaining_text:
        lines.append(Text(view.remaining_text, style="dim"))
    return Group(*lines)


def _alert_border(alert: Optional[UsageLevel]) -> str:
    if alert is None:
        return "white"
    return LEVEL_COLORS[alert]


def render_usage(state: UsageState, footer: Optional[str] = None) -> Panel:
    title = Table.grid(expand=True)
    title.add_column(justify="left")
    title.add_column(justify="right")
    title.add_row("[bold cyan]Copilot Usage[/bold cyan]", f"[magenta]{state.plan_label}[/magenta]")

    output = [title, Text(""), render_quota_row("Premium Requests", state.premium)]

    if state.chat_visible:
        output.append(Text(""))
        output.append(render_quota_row("Chat Messages", state.chat))

    output.append(Text(""))
    output.append(Text(footer or state.updated_text, style="dim"))

    return Panel(
        Group(*output),
        title="[bold white]GitHub Copilot",
        border_style=_alert_border(state.alert),
    )


def render_setup(state: SetupState) -> Panel:
    body = Group(
        Text(state.heading, style="bold yellow"),
        Text(state.body),
        Text(""),
        Text("Run `gh auth login`, or save a token with --set-token.", style="dim"),
    )
    return Panel(body, title="[bold white]GitHub Copilot", border_style=_alert_border(state.alert))


def render_state(state: Optional[DisplayState]) -> Panel:
    """Panel for any display state (None = nothing fetched yet)."""
    if state is None:
        return Panel(Text("Not yet refreshed", style="dim"), title="[bold white]GitHub Copilot")

    if isinstance(state, UsageState):
        return render_usage(state)

    if isinstance(state, NetworkErrorState):
        if state.last_usage is not None:
            panel = render_usage(state.last_usage, footer=state.error_text)
            panel.border_style = _alert_border(state.alert)
            return panel
        return Panel(
            Text(state.error_text, style="red"),
            title="[bold white]GitHub Copilot",
            border_style=_alert_border(state.alert),
        )

    return render_setup(state)


def _usage_phrase(view: QuotaView) -> str:
    if view.unlimited:
        return "unlimited"
    return f"{view.used_text} used"


def describe_state(state: Optional[DisplayState]) -> str:
    """One-line plain text summary, for logs."""
    if state is None:
        return "no state"

    if isinstance(state, UsageState):
        summary = f"{state.plan_label or 'Unknown plan'}: premium {_usage_phrase(state.premium)}"
        if state.chat_visible:
            summary += f", chat {_usage_phrase(state.chat)}"
        return summary

    if isinstance(state, NetworkErrorState):
        return state.error_text

    return f"{state.heading}: {state.body}"
