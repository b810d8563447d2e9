"""
Sync writer — persists freshly fetched analytics into the snapshot slot.

Idempotent: a fingerprint of the headline metrics is kept per
(influencer, platform) and an identical payload is not written twice in a
row while that write is still the stored snapshot and inside the TTL. After
that the write goes through so last_refreshed moves forward. The fingerprint
memory is a bounded LRU owned by the writer instance.

Write-back is best-effort. Failures are logged and reported as
SyncOutcome.FAILED; they never reach the read path, which already has the
fresh payload in hand.
"""
import logging
from collections import OrderedDict
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Tuple

from talentdash.analytics.cache_gate import parse_timestamp
from talentdash.analytics.identifiers import (
    is_plausible_external_id, normalize_platform, normalize_username,
)
from talentdash.analytics.types import SyncOutcome
from talentdash.config import ANALYTICS_TTL_SECONDS, SYNC_DEDUP_MAX_KEYS

logger = logging.getLogger('analytics.sync_writer')

_TICK = timedelta(microseconds=1)


class DedupMemory:
    """Bounded LRU: (influencer_id, platform) → (last dedup key, last timestamp)."""

    def __init__(self, max_entries: int = SYNC_DEDUP_MAX_KEYS):
        self.max_entries = max(1, max_entries)
        self._entries: "OrderedDict[Tuple[str, str], Tuple[tuple, datetime]]" = OrderedDict()

    def get(self, pair):
        entry = self._entries.get(pair)
        if entry is not None:
            self._entries.move_to_end(pair)
        return entry

    def remember(self, pair, key, timestamp):
        self._entries[pair] = (key, timestamp)
        self._entries.move_to_end(pair)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, pair):
        return pair in self._entries


def dedup_key(influencer_id: str, platform: str, payload: Dict[str, Any], link=None) -> tuple:
    """Fingerprint used to skip redundant writes."""
    identifier = (
        payload.get('external_id')
        or getattr(link, 'external_id', None)
        or normalize_username(payload.get('username'))
        or normalize_username(getattr(link, 'username', None))
    )
    return (
        influencer_id,
        normalize_platform(platform),
        identifier,
        payload.get('followers'),
        payload.get('engagement_rate'),
        payload.get('avg_views'),
    )


class SyncWriter:
    """
    Usage:
        writer = SyncWriter(store)
        writer.persist(influencer_id, 'instagram', payload, link=link)
    """

    def __init__(self, store, memory: DedupMemory = None, clock=None,
                 refreshed_by: str = 'analytics_engine', ttl: int = ANALYTICS_TTL_SECONDS):
        self.store = store
        self.memory = memory if memory is not None else DedupMemory()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.refreshed_by = refreshed_by
        self.ttl = ttl

    def persist(self, influencer_id: str, platform: str, payload: Dict[str, Any],
                link=None, previous_refreshed=None) -> SyncOutcome:
        log_extra = {'influencer_id': influencer_id, 'platform': platform}
        try:
            platform = normalize_platform(platform)
            pair = (influencer_id, platform)
            key = dedup_key(influencer_id, platform, payload, link)

            last = self.memory.get(pair)
            if last is not None and last[0] == key and self._is_current(last[1], previous_refreshed):
                logger.debug("Skipping duplicate analytics write for %s/%s", influencer_id, platform, extra=log_extra)
                return SyncOutcome.DEDUPLICATED

            timestamp = self._next_timestamp(previous_refreshed, last[1] if last else None)
            self.store.write_analytics_snapshot(
                influencer_id, platform, payload, timestamp, refreshed_by=self.refreshed_by,
            )

            external_id = payload.get('external_id')
            stored_id = getattr(link, 'external_id', None)
            if external_id and not stored_id:
                if is_plausible_external_id(external_id, platform):
                    self.store.update_platform_link(influencer_id, platform, external_id=external_id)
                    logger.info("Stored provider id %s for %s/%s", external_id, influencer_id, platform, extra=log_extra)
                else:
                    logger.warning("Provider returned implausible id %r for %s/%s — not stored",
                                   external_id, influencer_id, platform, extra=log_extra)

            self.memory.remember(pair, key, timestamp)
            return SyncOutcome.WRITTEN
        except Exception:
            logger.error("Failed to persist analytics for %s/%s", influencer_id, platform,
                         exc_info=True, extra=log_extra)
            return SyncOutcome.FAILED

    def _next_timestamp(self, *previous) -> datetime:
        """now, bumped past any earlier write so last_refreshed strictly increases."""
        now = parse_timestamp(self.clock())
        for value in previous:
            prev = parse_timestamp(value)
            if prev is not None and now <= prev:
                now = prev + _TICK
        return now

    def _is_current(self, written_at, previous_refreshed) -> bool:
        """
        True if our last write is still the stored snapshot and inside the TTL.

        previous_refreshed=None means the caller does not know the stored
        timestamp; the remembered write is trusted.
        """
        written_at = parse_timestamp(written_at)
        if written_at is None:
            return False
        if previous_refreshed is not None and parse_timestamp(previous_refreshed) != written_at:
            return False
        return (parse_timestamp(self.clock()) - written_at).total_seconds() <= self.ttl

    def written_at(self, influencer_id: str, platform: str):
        """Timestamp of the last write this writer made for the pair, or None."""
        entry = self.memory.get((influencer_id, normalize_platform(platform)))
        return entry[1] if entry else None
