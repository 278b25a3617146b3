#!/usr/bin/env python3
"""
User settings for the Copilot usage indicator.

Two values only: a manually entered GitHub token (the last place we look for
credentials) and the auto-refresh interval in seconds. They live in a small
JSON file so the panel and the daemon share them.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Optional

# Module-level logger
logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "copilot-usage"
SETTINGS_FILE = CONFIG_DIR / "settings.json"

# Environment overrides
CONFIG_PATH_ENV = "COPILOT_USAGE_CONFIG"
TOKEN_ENV = "COPILOT_USAGE_TOKEN"

DEFAULT_REFRESH_INTERVAL = 300  # seconds
MAX_REFRESH_INTERVAL = 3600


def clamp_interval(value) -> int:
    """Coerce a refresh interval into 0..MAX_REFRESH_INTERVAL (0 = never)."""
    try:
        seconds = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_REFRESH_INTERVAL
    return max(0, min(MAX_REFRESH_INTERVAL, seconds))


@dataclass(frozen=True)
class Settings:
    """Snapshot of the user settings, read once per refresh."""
    github_token: str = ""
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL

    @property
    def manual_token(self) -> str:
        """Manual token with surrounding whitespace removed."""
        return self.github_token.strip()


def settings_path() -> Path:
    """Location of the settings file, honouring COPILOT_USAGE_CONFIG."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return SETTINGS_FILE


def load_settings(path: Optional[Path] = None, apply_env: bool = True) -> Settings:
    """
    Load settings from disk.

    A missing file is the normal first-run case and yields defaults. A broken
    file is logged and also yields defaults; the indicator must keep working.

    Args:
        path: Settings file, defaults to settings_path()
        apply_env: Let COPILOT_USAGE_TOKEN override the stored token

    Returns:
        Settings snapshot
    """
    path = path or settings_path()
    settings = Settings()

    try:
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                token = data.get("github_token", "")
                settings = Settings(
                    github_token=token if isinstance(token, str) else "",
                    refresh_interval=clamp_interval(
                        data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL)
                    ),
                )
            else:
                logger.warning(f"Ignoring settings file with unexpected layout: {path}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to parse settings file {path}: {e}")
    except OSError as e:
        logger.warning(f"Failed to read settings file {path}: {e}")

    env_token = os.environ.get(TOKEN_ENV) if apply_env else None
    if env_token:
        settings = replace(settings, github_token=env_token)

    return settings


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """
    Write settings to disk, replacing the file atomically.

    Returns:
        Path that was written
    """
    path = path or settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = asdict(settings)
    data["github_token"] = settings.manual_token
    data["refresh_interval"] = clamp_interval(settings.refresh_interval)

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
    os.chmod(tmp_path, 0o600)
    os.replace(tmp_path, path)

    logger.info(f"Saved settings to {path}")
    return path


def settings_mtime(path: Optional[Path] = None) -> Optional[float]:
    """Modification time of the settings file, or None if it doesn't exist."""
    path = path or settings_path()
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def add_settings_arguments(parser):
    """Flags shared by the panel and the daemon for editing settings."""
    group = parser.add_argument_group('settings')
    group.add_argument(
        '--set-token',
        metavar='TOKEN',
        help='Save a GitHub token to use when no other credentials are found'
    )
    group.add_argument(
        '--clear-token',
        action='store_true',
        help='Remove the saved GitHub token'
    )
    group.add_argument(
        '--interval',
        type=int,
        metavar='SECONDS',
        help=f'Save the auto-refresh interval (0-{MAX_REFRESH_INTERVAL}, 0 = never)'
    )


def apply_settings_arguments(args, path: Optional[Path] = None) -> Optional[Settings]:
    """
    Persist any settings flags given on the command line.

    Returns:
        The saved Settings, or None when no settings flag was used
    """
    if args.set_token is None and not args.clear_token and args.interval is None:
        return None

    current = load_settings(path, apply_env=False)
    updated = current

    if args.clear_token:
        updated = replace(updated, github_token="")
    elif args.set_token is not None:
        updated = replace(updated, github_token=args.set_token.strip())

    if args.interval is not None:
        updated = replace(updated, refresh_interval=clamp_interval(args.interval))

    save_settings(updated, path)
    return updated
