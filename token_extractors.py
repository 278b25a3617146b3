#!/usr/bin/env python3
"""
Pull a GitHub token out of the credential files left behind by other tools.

Each extractor takes already-decoded content (a parsed JSON document or raw
text) and returns the token string, or None when it isn't there. A missing
key looks exactly like a missing file to the caller, so the extractors never
raise on odd shapes.
"""

import re
from typing import Any, Optional

# gh CLI <= 2.24 wrote the token straight into hosts.yml
LEGACY_TOKEN_PATTERN = re.compile(r'oauth_token:\s*(\S+)')

HOSTS_KEY = "github.com"


def _as_token(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def from_hosts_document(doc: Any) -> Optional[str]:
    """
    Read ~/.config/github-copilot/hosts.json (Copilot CLI, Neovim, Vim).

    Structure: {"github.com": {"user": "...", "oauth_token": "gho_..."}}
    """
    if not isinstance(doc, dict):
        return None
    entry = doc.get(HOSTS_KEY)
    if not isinstance(entry, dict):
        return None
    return _as_token(entry.get("oauth_token"))


def from_apps_document(doc: Any) -> Optional[str]:
    """
    Read ~/.config/github-copilot/apps.json.

    Keys are "github.com:<client id>", one per app that signed in. The first
    entry carrying a token wins.
    """
    if not isinstance(doc, dict):
        return None
    for entry in doc.values():
        if not isinstance(entry, dict):
            continue
        token = _as_token(entry.get("oauth_token"))
        if token:
            return token
    return None


def from_oauth_document(doc: Any) -> Optional[str]:
    """
    Read ~/.config/github-copilot/oauth.json (VS Code / newer extensions).

    Structure: {"https://github.com/login/oauth": [{"accessToken": "..."}]}
    """
    if not isinstance(doc, dict):
        return None
    for entries in doc.values():
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            token = _as_token(entry.get("accessToken"))
            if token:
                return token
    return None


def from_legacy_yaml_text(text: Any) -> Optional[str]:
    """
    Scrape the token out of ~/.config/gh/hosts.yml.

    Not a YAML parse, just the `oauth_token:` line. Newer gh versions keep
    the token in the system keyring and drop this field, so expect None
    more often than not; `gh auth token` is the preferred path.
    """
    if not isinstance(text, str):
        return None
    match = LEGACY_TOKEN_PATTERN.search(text)
    if not match:
        return None
    return match.group(1)
