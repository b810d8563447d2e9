"""
Centralized configuration — all env vars, constants, platform map.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Flask ─────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Analytics provider (Modash) ──────────────────────────────────────────────
ANALYTICS_API_URL = os.getenv('ANALYTICS_API_URL', 'https://api.modash.io')
ANALYTICS_API_KEY = os.getenv('ANALYTICS_API_KEY')
ANALYTICS_API_TIMEOUT = int(os.getenv('ANALYTICS_API_TIMEOUT', '30'))

# ── Snapshot cache ────────────────────────────────────────────────────────────
ANALYTICS_TTL_SECONDS = int(os.getenv('ANALYTICS_TTL_SECONDS', str(86400 * 28)))  # 4 weeks
CLOCK_SKEW_SECONDS = int(os.getenv('CLOCK_SKEW_SECONDS', '300'))

# ── Rate limiting ─────────────────────────────────────────────────────────────
RATE_LIMIT_COOLDOWN_SECONDS = int(os.getenv('RATE_LIMIT_COOLDOWN_SECONDS', '60'))

# ── Sync writer ───────────────────────────────────────────────────────────────
SYNC_DEDUP_MAX_KEYS = int(os.getenv('SYNC_DEDUP_MAX_KEYS', '1024'))

# ── Platforms ─────────────────────────────────────────────────────────────────
SUPPORTED_PLATFORMS = [
    'instagram',
    'tiktok',
    'youtube',
]

# Provider report endpoints use their own platform slugs
PROVIDER_PLATFORM_SLUGS = {
    'instagram': 'instagram',
    'tiktok':    'tiktok',
    'youtube':   'youtube',
}
