"""
Resolver — picks the identifier and runs the tiered provider fetch.

Tiers run in order, each at most once:

    1. ExternalIdTier   provider id stored on the platform link
    2. UsernameTier     normalized handle from the platform link

Each tier returns a tagged TierOutcome:

    SUCCESS       → stop, return the payload
    FALL_THROUGH  → try the next tier (id missing / implausible / 400 / 404)
    ABORT         → stop, return the error (429, other provider errors,
                    no username)

The chain loop in Resolver.resolve() is the only place that moves between
tiers, so a 429 at any tier ends the resolution: no later tier is attempted.
Tiers run sequentially; the id tier must finish before the username tier can
start.
"""
import logging
from typing import List

from talentdash.analytics.identifiers import (
    is_plausible_external_id, normalize_platform, normalize_username,
)
from talentdash.analytics.normalize import normalize_metrics
from talentdash.analytics.types import (
    ErrorKind, ProviderError, ResolutionResult, TierOutcome, TierStatus,
)

logger = logging.getLogger('analytics.resolver')


def _outcome_for_error(error: ProviderError, fallback_on_invalid: bool) -> TierOutcome:
    if error.is_rate_limited:
        return TierOutcome.abort(
            ErrorKind.RATE_LIMITED, error.message, retry_after=error.retry_after, called=True,
        )
    if fallback_on_invalid and error.is_invalid_identifier:
        return TierOutcome.fall_through(f"provider rejected identifier ({error.status})", called=True)
    return TierOutcome.abort(
        ErrorKind.TRANSIENT_ERROR, error.message or f"provider error {error.status}", called=True,
    )


class ResolutionTier:
    """One identifier strategy. Subclasses implement attempt()."""
    name: str = ''

    def __init__(self, gateway):
        self.gateway = gateway

    def attempt(self, influencer_id: str, platform: str, link) -> TierOutcome:
        raise NotImplementedError


class ExternalIdTier(ResolutionTier):
    """Fast path: query by the provider id already stored for this platform."""
    name = 'external_id'

    def attempt(self, influencer_id, platform, link):
        external_id = getattr(link, 'external_id', None)
        if not external_id:
            return TierOutcome.fall_through('no external id stored')
        if not is_plausible_external_id(external_id, platform):
            logger.warning(
                "Ignoring implausible external id for %s/%s: %r",
                influencer_id, platform, external_id,
                extra={'influencer_id': influencer_id, 'platform': platform, 'tier': self.name},
            )
            return TierOutcome.fall_through('stored external id is not a provider id')

        try:
            payload = normalize_metrics(self.gateway.fetch_by_external_id(external_id.strip(), platform))
        except ProviderError as e:
            return _outcome_for_error(e, fallback_on_invalid=True)

        if not payload.get('external_id'):
            payload = dict(payload, external_id=external_id.strip())
        return TierOutcome.success(payload)


class UsernameTier(ResolutionTier):
    """Fallback: query by platform handle. Surfaces the provider id for next time."""
    name = 'username'

    def attempt(self, influencer_id, platform, link):
        username = normalize_username(getattr(link, 'username', None))
        if not username:
            return TierOutcome.abort(ErrorKind.NOT_CONFIGURED, f"No linked {platform} account")

        try:
            payload = normalize_metrics(self.gateway.fetch_by_username(username, platform))
        except ProviderError as e:
            return _outcome_for_error(e, fallback_on_invalid=False)

        if not payload.get('username'):
            payload = dict(payload, username=username)
        return TierOutcome.success(payload)


class Resolver:
    """
    Runs the tier chain for one (influencer, platform).

    store supplies the platform link when the caller doesn't pass one;
    guard (optional) is a RateLimitGuard consulted before any call and
    tripped on every 429.
    """

    def __init__(self, gateway, store=None, guard=None, tiers: List[ResolutionTier] = None):
        self.gateway = gateway
        self.store = store
        self.guard = guard
        self.tiers = tiers if tiers is not None else [ExternalIdTier(gateway), UsernameTier(gateway)]

    def resolve(self, influencer_id: str, platform: str, link=None) -> ResolutionResult:
        platform = normalize_platform(platform)
        log_extra = {'influencer_id': influencer_id, 'platform': platform}

        if link is None and self.store is not None:
            record = self.store.get_influencer(influencer_id)
            link = record.links.get(platform)

        if self.guard is not None:
            wait = self.guard.retry_after()
            if wait is not None:
                logger.info("Skipping provider for %s/%s — cooldown %.1fs left",
                            influencer_id, platform, wait, extra=log_extra)
                return ResolutionResult(
                    error=ErrorKind.RATE_LIMITED,
                    message='Provider cooldown in effect',
                    retry_after=wait,
                )

        calls = 0
        for tier in self.tiers:
            outcome = tier.attempt(influencer_id, platform, link)
            if outcome.called:
                calls += 1

            if outcome.status == TierStatus.SUCCESS:
                if self.guard is not None:
                    self.guard.record_success()
                payload = outcome.payload
                external_id = payload.get('external_id')
                if external_id and not is_plausible_external_id(external_id, platform):
                    external_id = None
                logger.info("Resolved %s/%s via %s tier", influencer_id, platform, tier.name, extra=log_extra)
                return ResolutionResult(
                    payload=payload, tier=tier.name, external_id=external_id, calls=calls,
                )

            if outcome.status == TierStatus.ABORT:
                if outcome.error == ErrorKind.RATE_LIMITED and self.guard is not None:
                    self.guard.trip(outcome.retry_after)
                logger.warning("Resolution aborted for %s/%s at %s tier: %s (%s)",
                               influencer_id, platform, tier.name, outcome.error.value,
                               outcome.message, extra=log_extra)
                return ResolutionResult(
                    tier=tier.name, error=outcome.error, message=outcome.message,
                    retry_after=outcome.retry_after, calls=calls,
                )

            logger.debug("%s tier fell through for %s/%s: %s",
                         tier.name, influencer_id, platform, outcome.message, extra=log_extra)

        return ResolutionResult(
            error=ErrorKind.NOT_CONFIGURED, message=f"No linked {platform} account", calls=calls,
        )
