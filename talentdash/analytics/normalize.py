"""
Provider payload normalization.

The provider (and older cached snapshots) spell the same metric several ways:
engagementRate / engagement_rate, avgViews / averageViews / avgReelsPlays …
normalize_metrics() folds them into one snake_case shape so the merge engine,
cache gate and sync writer only ever see canonical keys. Unknown keys pass
through untouched.
"""
import math
from typing import Dict, Any, Optional

_NUMBER_ALIASES = {
    'followers':       ('followers', 'follower_count', 'subscriber_count'),
    'engagement_rate': ('engagement_rate', 'engagementRate'),
    'avg_views':       ('avg_views', 'avgViews', 'averageViews', 'avg_reels_views', 'avgReelsPlays'),
    'avg_likes':       ('avg_likes', 'avgLikes'),
    'avg_comments':    ('avg_comments', 'avgComments'),
}

_STRING_ALIASES = {
    'external_id': ('external_id', 'externalId', 'userId', 'user_id'),
    'username':    ('username', 'handle'),
    'fullname':    ('fullname', 'full_name'),
    'url':         ('url', 'profileUrl', 'profile_url'),
    'picture':     ('picture', 'picture_url'),
    'bio':         ('bio', 'description'),
}

_LIST_ALIASES = {
    'recent_posts':  ('recent_posts', 'recentPosts'),
    'popular_posts': ('popular_posts', 'popularPosts'),
}

# Headline metrics default to 0 when missing; the rest stay None
_ZERO_DEFAULTS = ('followers', 'engagement_rate', 'avg_views')

_ALIAS_KEYS = {
    alias
    for table in (_NUMBER_ALIASES, _STRING_ALIASES, _LIST_ALIASES)
    for aliases in table.values()
    for alias in aliases
}


def coerce_number(*values) -> Optional[float]:
    """First value that converts to a finite number, else None."""
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            return int(number) if number.is_integer() else number
    return None


def coerce_string(*values) -> Optional[str]:
    """First non-blank string (stripped), else None."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_metrics(raw) -> Dict[str, Any]:
    """Return a canonical analytics payload. Never raises; bad input → {}."""
    if not isinstance(raw, dict) or not raw:
        return {}

    payload = {k: v for k, v in raw.items() if k not in _ALIAS_KEYS}

    for key, aliases in _NUMBER_ALIASES.items():
        value = coerce_number(*(raw.get(a) for a in aliases))
        if value is None and key in _ZERO_DEFAULTS:
            value = 0
        payload[key] = value

    for key, aliases in _STRING_ALIASES.items():
        payload[key] = coerce_string(*(raw.get(a) for a in aliases))

    for key, aliases in _LIST_ALIASES.items():
        items = next((raw.get(a) for a in aliases if isinstance(raw.get(a), list)), None)
        payload[key] = items or []

    if payload.get('username'):
        payload['username'] = payload['username'].lstrip('@') or None

    return payload
