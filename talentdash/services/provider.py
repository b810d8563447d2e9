"""
Analytics provider (Modash) API client — profile reports by external id or username.

Both lookups hit the same report endpoint; the provider accepts either its own
userId or the platform handle as the path identifier. Every non-200 response
is raised as ProviderError(status, message) so callers can decide between
fallback, abort and retry without parsing response bodies.
"""
import logging
from typing import Dict, Any, Optional
from urllib.parse import quote

import requests

from talentdash.analytics.normalize import normalize_metrics
from talentdash.analytics.types import ProviderError
from talentdash.config import (
    ANALYTICS_API_URL, ANALYTICS_API_KEY, ANALYTICS_API_TIMEOUT,
    PROVIDER_PLATFORM_SLUGS,
)

logger = logging.getLogger('services.provider')


def _parse_retry_after(value) -> Optional[float]:
    """Retry-After in seconds; HTTP-date values are ignored (cooldown default applies)."""
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or '')[:200]
    if isinstance(body, dict):
        return str(body.get('message') or body.get('error') or body)[:200]
    return str(body)[:200]


class AnalyticsProviderClient:
    """
    Thin HTTP client for the provider's profile report endpoint.

    Usage:
        client = AnalyticsProviderClient()
        payload = client.fetch_by_username('alice_ig', 'instagram')
        payload['external_id']   # provider userId, if returned
    """

    REPORT_PATH = '/v1/{platform}/profile/{identifier}/report'

    def __init__(self, api_key=None, base_url=None, timeout=None, session=None):
        self.api_key = api_key or ANALYTICS_API_KEY
        self.base_url = (base_url or ANALYTICS_API_URL).rstrip('/')
        self.timeout = timeout or ANALYTICS_API_TIMEOUT
        self.session = session or requests.Session()
        self.headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Accept': 'application/json',
        }

    def fetch_by_external_id(self, external_id: str, platform: str) -> Dict[str, Any]:
        """Report lookup by provider-issued id."""
        return self._get_report(external_id, platform)

    def fetch_by_username(self, username: str, platform: str) -> Dict[str, Any]:
        """Report lookup by platform handle (already normalized, no '@')."""
        return self._get_report(username, platform)

    # ── Private helpers ───────────────────────────────────────────────

    def _report_url(self, identifier, platform):
        slug = PROVIDER_PLATFORM_SLUGS.get(platform)
        if not slug:
            raise ValueError(f"Unsupported platform: {platform}")
        path = self.REPORT_PATH.format(platform=slug, identifier=quote(str(identifier), safe=''))
        return f"{self.base_url}{path}"

    def _get_report(self, identifier, platform) -> Dict[str, Any]:
        url = self._report_url(identifier, platform)
        logger.debug("Request URL: %s", url)

        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("Provider request failed for %s/%s: %s", platform, identifier, e)
            raise ProviderError(None, str(e)) from e

        logger.debug("Response status: %d", response.status_code)

        if response.status_code != 200:
            message = _error_message(response)
            retry_after = _parse_retry_after(response.headers.get('Retry-After'))
            if response.status_code == 429:
                logger.warning("Provider rate limited (%s/%s), retry_after=%s", platform, identifier, retry_after)
            else:
                logger.info("Provider returned %d for %s/%s: %s", response.status_code, platform, identifier, message)
            raise ProviderError(response.status_code, message, retry_after=retry_after)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(None, 'Invalid JSON response from provider') from e

        return self._standardize_report(data)

    def _standardize_report(self, data) -> Dict[str, Any]:
        """Flatten the nested report into one canonical payload."""
        report = data.get('profile') if isinstance(data, dict) else None
        if not isinstance(report, dict):
            raise ProviderError(None, 'No profile data returned from provider')

        summary = report.get('profile') if isinstance(report.get('profile'), dict) else {}

        raw = dict(summary)
        raw['userId'] = report.get('userId') or summary.get('userId')
        raw['avgReelsPlays'] = summary.get('avgReelsPlays', report.get('avgReelsPlays'))
        raw['bio'] = summary.get('bio') or report.get('bio')
        raw['recentPosts'] = report.get('recentPosts') or []
        raw['popularPosts'] = report.get('popularPosts') or []
        raw['sponsored_posts'] = report.get('sponsoredPosts') or []
        raw['audience'] = report.get('audience') or {}
        raw['stats'] = report.get('stats') or {}
        raw['hashtags'] = report.get('hashtags') or []
        raw['mentions'] = report.get('mentions') or []
        raw['is_verified'] = bool(summary.get('isVerified', report.get('isVerified', False)))
        raw.pop('isVerified', None)

        return normalize_metrics(raw)
