"""Copilot Usage Indicator version information."""

__version__ = "1.1.0"
__title__ = "Copilot Usage Indicator"
__description__ = "A panel-style indicator for GitHub Copilot monthly quota usage"
__author__ = "Copilot Usage Indicator Contributors"
__license__ = "GPL-2.0-or-later"

# v1.1.0 - Sturdier refresh pipeline
# - `gh auth token` is now bounded by a 5 second timeout
# - Overlapping refreshes are queued instead of racing each other
# - Network errors keep the last good numbers on screen
# - Empty API responses show "Copilot Data Unavailable" instead of an error

# v1.0.0 - First release
# - Token discovery: gh CLI, gh hosts.yml, github-copilot hosts/apps/oauth.json
# - Manual token fallback in settings
# - Premium request and chat quota display, auto refresh
