#!/usr/bin/env python3
"""
Token probes: one attempt each to find a GitHub token in a single place.

Every probe answers with a token or None. Absence is normal here (most
people have one or two of these tools installed, not all five), so a probe
never raises for a missing file, a missing executable or content it can't
make sense of.
"""

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from settings import Settings
import token_extractors

# Module-level logger
logger = logging.getLogger(__name__)

GH_COMMAND = ("gh", "auth", "token")
GH_TIMEOUT = 5.0  # seconds


class TokenSource(Enum):
    """Where a token came from. Declaration order is probe priority."""
    GH_CLI = "gh auth token"
    GH_HOSTS_YAML = "~/.config/gh/hosts.yml"
    COPILOT_HOSTS_JSON = "~/.config/github-copilot/hosts.json"
    COPILOT_APPS_JSON = "~/.config/github-copilot/apps.json"
    COPILOT_OAUTH_JSON = "~/.config/github-copilot/oauth.json"
    MANUAL_SETTING = "manual token (settings)"

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self]


SOURCE_LABELS = {
    TokenSource.GH_CLI: "GitHub CLI",
    TokenSource.GH_HOSTS_YAML: "GitHub CLI (legacy hosts.yml)",
    TokenSource.COPILOT_HOSTS_JSON: "Copilot CLI / Neovim / Vim",
    TokenSource.COPILOT_APPS_JSON: "Copilot apps config",
    TokenSource.COPILOT_OAUTH_JSON: "VS Code Copilot extension",
    TokenSource.MANUAL_SETTING: "Manual token",
}


def _clean(token: Any) -> Optional[str]:
    """Trim a candidate token; empty after trimming counts as not found."""
    if not isinstance(token, str):
        return None
    token = token.strip()
    return token or None


class TokenProbe:
    """
    Base class for a single token source.

    Subclasses implement probe(). Callers use run(), which trims the result
    and turns anything unexpected into a logged "not found".
    """

    def __init__(self, source: TokenSource, quiet: bool = True):
        self.source = source
        # quiet probes log misses at DEBUG; others at INFO
        self.quiet = quiet

    async def probe(self) -> Optional[str]:
        raise NotImplementedError

    async def run(self) -> Optional[str]:
        """Run the probe; returns a trimmed token or None."""
        try:
            token = _clean(await self.probe())
        except Exception as e:
            logger.error(f"Unexpected error probing {self.source.value}: {e}", exc_info=True)
            return None

        if token:
            logger.debug(f"Found token via {self.source.value} (starts with {token[:4]}...)")
        elif self.quiet:
            logger.debug(f"No token from {self.source.value}")
        else:
            logger.info(f"No token from {self.source.value}")
        return token

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source.name})"


class SubprocessProbe(TokenProbe):
    """Ask an external CLI for its token, e.g. `gh auth token`."""

    def __init__(self, source: TokenSource, argv: Sequence[str],
                 timeout: Optional[float] = GH_TIMEOUT, quiet: bool = True):
        super().__init__(source, quiet=quiet)
        self.argv = list(argv)
        self.timeout = timeout

    async def probe(self) -> Optional[str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            # Executable not installed or not runnable
            logger.debug(f"Could not run {self.argv[0]}: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"'{' '.join(self.argv)}' did not finish within {self.timeout}s")
            return None
        finally:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        if proc.returncode != 0:
            logger.debug(f"'{' '.join(self.argv)}' exited with {proc.returncode}")
            return None

        try:
            output = stdout.decode('utf-8')
        except UnicodeDecodeError:
            return None

        lines = output.strip().splitlines()
        return lines[0] if lines else None


class FileProbe(TokenProbe):
    """Read a credential file and hand its content to an extractor."""

    def __init__(self, source: TokenSource, path: Path,
                 extractor: Callable[[Any], Optional[str]],
                 as_json: bool = True, quiet: bool = True):
        super().__init__(source, quiet=quiet)
        self.path = Path(path)
        self.extractor = extractor
        self.as_json = as_json

    def _read(self) -> Optional[str]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {self.path}: {e}")
            return None

    async def probe(self) -> Optional[str]:
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            return None

        if not self.as_json:
            return self.extractor(raw)

        try:
            content = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug(f"Malformed JSON in {self.path}: {e}")
            return None
        return self.extractor(content)


class SettingProbe(TokenProbe):
    """The token the user typed into the settings."""

    def __init__(self, settings: Settings):
        super().__init__(TokenSource.MANUAL_SETTING, quiet=True)
        self.settings = settings

    async def probe(self) -> Optional[str]:
        return self.settings.manual_token


def default_probes(settings: Settings, config_dir: Optional[Path] = None,
                   gh_command: Sequence[str] = GH_COMMAND,
                   gh_timeout: Optional[float] = GH_TIMEOUT) -> List[TokenProbe]:
    """
    Build the standard probe chain in priority order.

    Args:
        settings: Settings snapshot for this refresh (manual token)
        config_dir: Base config directory, defaults to ~/.config
        gh_command: Command printing the gh token on stdout
        gh_timeout: Seconds to wait for the gh command

    Returns:
        List of probes, most current sources first, manual token last
    """
    config_dir = Path(config_dir) if config_dir else Path.home() / ".config"
    copilot_dir = config_dir / "github-copilot"

    return [
        SubprocessProbe(TokenSource.GH_CLI, gh_command, timeout=gh_timeout, quiet=False),
        FileProbe(TokenSource.GH_HOSTS_YAML, config_dir / "gh" / "hosts.yml",
                  token_extractors.from_legacy_yaml_text, as_json=False),
        FileProbe(TokenSource.COPILOT_HOSTS_JSON, copilot_dir / "hosts.json",
                  token_extractors.from_hosts_document),
        FileProbe(TokenSource.COPILOT_APPS_JSON, copilot_dir / "apps.json",
                  token_extractors.from_apps_document),
        FileProbe(TokenSource.COPILOT_OAUTH_JSON, copilot_dir / "oauth.json",
                  token_extractors.from_oauth_document),
        SettingProbe(settings),
    ]
