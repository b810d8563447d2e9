"""
Provider rate-limit cooldown with Redis-backed state and health tracking.

When the provider answers 429 the guard is tripped for Retry-After seconds
(or the configured default). While a cooldown is active every resolution
short-circuits to RATE_LIMITED without touching the network, so a burst of
dashboard requests cannot turn one 429 into many.

State lives in Redis so all web workers share one cooldown. If Redis is
unavailable the guard fails open: requests pass through to the provider.
"""
import logging
import math
import time
from typing import Optional

from talentdash.config import RATE_LIMIT_COOLDOWN_SECONDS

logger = logging.getLogger('services.rate_limit')


class RateLimitGuard:
    """
    Redis-backed cooldown for one external service.

    Usage:
        guard = RateLimitGuard('modash', redis_client, cooldown=60)
        if guard.is_cooling_down:
            ...                       # skip the call
        guard.trip(retry_after=30)    # after a 429
    """

    PREFIX = 'ratelimit'

    def __init__(self, name, redis_client, cooldown=RATE_LIMIT_COOLDOWN_SECONDS):
        self.name = name
        self.redis = redis_client
        self.cooldown = cooldown

    # ── Redis keys ────────────────────────────────────────────────────

    @property
    def _until_key(self):
        return f'{self.PREFIX}:{self.name}:until'

    @property
    def _health_key(self):
        return f'{self.PREFIX}:{self.name}:health'

    # ── State ─────────────────────────────────────────────────────────

    def retry_after(self) -> Optional[float]:
        """Seconds left in the current cooldown, or None if none is active."""
        try:
            until = self.redis.get(self._until_key)
            if until is None:
                return None
            remaining = float(until) - time.time()
            return round(remaining, 1) if remaining > 0 else None
        except Exception:
            return None

    @property
    def is_cooling_down(self) -> bool:
        return self.retry_after() is not None

    def trip(self, retry_after=None):
        """Start (or extend) a cooldown after a 429."""
        seconds = retry_after if retry_after is not None and retry_after > 0 else self.cooldown
        until = time.time() + seconds
        try:
            current = self.redis.get(self._until_key)
            if current is not None and float(current) >= until:
                return
            self.redis.setex(self._until_key, max(1, math.ceil(seconds)), str(until))
            pipe = self.redis.pipeline()
            pipe.hincrby(self._health_key, 'rate_limited', 1)
            pipe.hset(self._health_key, 'last_rate_limited', str(time.time()))
            pipe.execute()
            logger.warning("Provider '%s' rate limited — cooling down for %ss", self.name, seconds)
        except Exception as e:
            logger.error("Failed to record cooldown for '%s': %s", self.name, e)

    def record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.hincrby(self._health_key, 'success', 1)
            pipe.hset(self._health_key, 'last_success', str(time.time()))
            pipe.execute()
        except Exception:
            pass

    def get_health(self):
        """Return health metrics dict for this service."""
        try:
            data = self.redis.hgetall(self._health_key)
            return {
                'name': self.name,
                'state': 'cooling_down' if self.is_cooling_down else 'ok',
                'retry_after': self.retry_after(),
                'cooldown': self.cooldown,
                'total_success': int(data.get('success', 0)),
                'total_rate_limited': int(data.get('rate_limited', 0)),
                'last_success': float(data['last_success']) if data.get('last_success') else None,
                'last_rate_limited': float(data['last_rate_limited']) if data.get('last_rate_limited') else None,
            }
        except Exception:
            return {
                'name': self.name,
                'state': 'unknown',
                'retry_after': None,
                'cooldown': self.cooldown,
                'total_success': 0,
                'total_rate_limited': 0,
                'last_success': None,
                'last_rate_limited': None,
            }

    def reset(self):
        """Manually clear an active cooldown."""
        try:
            self.redis.delete(self._until_key)
            logger.info("Cooldown '%s' manually reset", self.name)
        except Exception as e:
            logger.error("Failed to reset cooldown '%s': %s", self.name, e)


# ── Global registry ───────────────────────────────────────────────────────

_registry = {}


def get_guard(name, redis_client=None, **kwargs):
    """Get or create a named guard (singleton per name)."""
    if name not in _registry:
        if redis_client is None:
            from talentdash.extensions import redis_client as rc
            redis_client = rc
        _registry[name] = RateLimitGuard(name, redis_client, **kwargs)
    return _registry[name]


def get_all_guards():
    return dict(_registry)


def init_guards(redis_client):
    """Initialize guards for all rate-limited external services."""
    guards = {
        'modash': RateLimitGuard('modash', redis_client, cooldown=RATE_LIMIT_COOLDOWN_SECONDS),
    }
    _registry.update(guards)
    return guards
