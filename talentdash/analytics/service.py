"""
Analytics service — resolve_analytics() for the view layer.

    cache gate ─ fresh ──────────────────────────────► merge (0 calls)
        │
        └ stale / missing ─► resolver ─ ok ─► sync writer ─► merge
                                 │
                                 └ error ─► merge(last snapshot), stale=True

The merged view is always returned; provider and persistence problems are
reported in the result, never raised. Only an unknown influencer or an
unsupported platform raises.
"""
import logging
from typing import Dict, Any

from talentdash.analytics import cache_gate
from talentdash.analytics.identifiers import normalize_platform
from talentdash.analytics.merge import merge
from talentdash.analytics.resolver import Resolver
from talentdash.analytics.sync_writer import SyncWriter
from talentdash.analytics.types import AnalyticsResult, ErrorKind, SyncOutcome
from talentdash.config import ANALYTICS_TTL_SECONDS, SUPPORTED_PLATFORMS

logger = logging.getLogger('analytics.service')


def error_message(error: ErrorKind, platform: str, retry_after=None) -> str:
    """User-facing text for each error state."""
    if error == ErrorKind.RATE_LIMITED:
        if retry_after:
            return f"Analytics provider is cooling down — try again in {int(round(retry_after))}s."
        return "Analytics provider is cooling down — try again shortly."
    if error == ErrorKind.NOT_CONFIGURED:
        return f"No linked {platform} account."
    return "Analytics are temporarily unavailable."


class AnalyticsService:

    def __init__(self, store, resolver: Resolver, writer: SyncWriter, ttl: int = ANALYTICS_TTL_SECONDS):
        self.store = store
        self.resolver = resolver
        self.writer = writer
        self.ttl = ttl

    def resolve_analytics(self, influencer_id: str, platform: str, force: bool = False) -> AnalyticsResult:
        """
        Merged analytics view for one influencer on one platform.

        force=True skips the cache gate (manual refresh) but still honours
        the provider cooldown.

        Raises InfluencerNotFound / ValueError (unsupported platform).
        """
        platform = normalize_platform(platform)
        record = self.store.get_influencer(influencer_id)
        snapshot = record.snapshots.get(platform)
        link = record.links.get(platform)

        if not force and cache_gate.is_fresh(snapshot, ttl=self.ttl):
            logger.debug("Serving cached analytics for %s/%s", influencer_id, platform)
            return AnalyticsResult(
                data=merge(record.identity, snapshot, platform=platform),
                stale=False,
                source='cache',
                last_refreshed=cache_gate.parse_timestamp(snapshot.last_refreshed),
            )

        resolution = self.resolver.resolve(influencer_id, platform, link=link)

        if resolution.ok:
            outcome = self.writer.persist(
                influencer_id, platform, resolution.payload,
                link=link,
                previous_refreshed=snapshot.last_refreshed if snapshot else None,
            )
            if outcome == SyncOutcome.FAILED:
                logger.warning("Serving %s/%s without write-back (%s)",
                               influencer_id, platform, ErrorKind.PERSISTENCE_FAILURE.value)
                refreshed = cache_gate.parse_timestamp(snapshot.last_refreshed) if snapshot else None
            else:
                refreshed = self.writer.written_at(influencer_id, platform)
            return AnalyticsResult(
                data=merge(record.identity, resolution.payload, platform=platform),
                stale=False,
                source='provider',
                last_refreshed=refreshed,
            )

        has_snapshot = snapshot is not None and bool(snapshot.payload)
        return AnalyticsResult(
            data=merge(record.identity, snapshot if has_snapshot else None, platform=platform),
            stale=True,
            error=resolution.error,
            message=error_message(resolution.error, platform, resolution.retry_after),
            source='stale_snapshot' if has_snapshot else 'identity_only',
            last_refreshed=cache_gate.parse_timestamp(snapshot.last_refreshed) if has_snapshot else None,
            retry_after=resolution.retry_after,
        )

    def refresh_all(self, platform: str = None) -> Dict[str, Any]:
        """
        Sequentially refresh every linked influencer whose snapshot is stale.

        Fresh snapshots cost nothing (cache gate). The first RATE_LIMITED
        stops the whole batch.
        """
        platforms = [normalize_platform(platform)] if platform else list(SUPPORTED_PLATFORMS)
        summary = {
            'processed': 0,
            'refreshed': 0,
            'cached': 0,
            'failed': 0,
            'not_configured': 0,
            'rate_limited': False,
            'errors': [],
        }

        for plat in platforms:
            for influencer_id in self.store.list_influencer_ids(plat):
                result = self.resolve_analytics(influencer_id, plat)
                summary['processed'] += 1

                if result.error is None:
                    summary['refreshed' if result.source == 'provider' else 'cached'] += 1
                    continue
                if result.error == ErrorKind.RATE_LIMITED:
                    summary['rate_limited'] = True
                    summary['retry_after'] = result.retry_after
                    logger.warning("Bulk refresh stopped at %s/%s — provider rate limited", influencer_id, plat)
                    return summary
                if result.error == ErrorKind.NOT_CONFIGURED:
                    summary['not_configured'] += 1
                    continue
                summary['failed'] += 1
                if len(summary['errors']) < 10:
                    summary['errors'].append(f"{influencer_id}/{plat}: {result.message}")

        logger.info("Bulk refresh complete: %d processed, %d refreshed, %d cached, %d failed",
                    summary['processed'], summary['refreshed'], summary['cached'], summary['failed'])
        return summary


def build_service(session_factory=None, gateway=None, guard=None) -> AnalyticsService:
    """Wire the default store, provider client, cooldown guard and writer."""
    from talentdash.services.identity_store import IdentityStore
    from talentdash.services.provider import AnalyticsProviderClient
    from talentdash.services.rate_limit import get_guard

    store = IdentityStore(session_factory=session_factory)
    gateway = gateway or AnalyticsProviderClient()
    guard = guard if guard is not None else get_guard('modash')
    resolver = Resolver(gateway, store=store, guard=guard)
    return AnalyticsService(store, resolver, SyncWriter(store, ttl=ANALYTICS_TTL_SECONDS))
