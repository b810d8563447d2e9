"""
Identifier hygiene — platform names, usernames, provider external ids.

Internal influencer ids are UUIDs. Older records sometimes stored those UUIDs
in the provider-id slot; sending one to the provider burns a request and
returns a 4xx, so every external id is checked here before use or storage.
"""
import re
from typing import Optional

from talentdash.config import SUPPORTED_PLATFORMS

_UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r'\s')

MAX_EXTERNAL_ID_LENGTH = 128

# Per-platform shape rules for provider ids
_PLATFORM_ID_PREFIXES = {
    'youtube': 'UC',  # channel ids; anything else is a handle stored in the wrong column
}


def is_uuid(value) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


def normalize_platform(platform) -> str:
    """Lowercase + validate a platform name. Raises ValueError if unsupported."""
    normalized = platform.strip().lower() if isinstance(platform, str) else ''
    if normalized not in SUPPORTED_PLATFORMS:
        raise ValueError(f"Unsupported platform: {platform}")
    return normalized


def normalize_username(username) -> Optional[str]:
    """Trim and strip leading '@' markers. Returns None when nothing is left."""
    if not isinstance(username, str):
        return None
    cleaned = username.strip().lstrip('@').strip()
    return cleaned or None


def is_plausible_external_id(value, platform: str = None) -> bool:
    """
    True if value looks like a provider-issued id rather than internal or
    user-entered data.

    Rejects empty values, internal UUIDs, handles ('@name'), anything with
    whitespace, and — when platform is given — ids that break that platform's
    shape rule (YouTube channel ids start with 'UC').
    """
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not candidate or len(candidate) > MAX_EXTERNAL_ID_LENGTH:
        return False
    if candidate.startswith('@') or _WHITESPACE_RE.search(candidate):
        return False
    if is_uuid(candidate):
        return False
    if platform:
        prefix = _PLATFORM_ID_PREFIXES.get(platform.strip().lower())
        if prefix and not candidate.startswith(prefix):
            return False
    return True
