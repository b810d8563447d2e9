"""
Legacy notes migration — split the old single JSON ``notes`` blob.

Older rows kept CRM notes and the provider cache in one JSON string:

    {
      "text": "met at VidCon",
      "modash_data": {
        "platform": "instagram",
        "userId": "...", "followers": 1000, "last_refreshed": "...",
        "platforms": {"tiktok": {"userId": "...", "followers": 50, ...}}
      }
    }

parse_legacy_notes() turns that into CRM text + per-platform link ids +
per-platform snapshots. Only ids that pass is_plausible_external_id() for
their platform are kept, and the top-level (legacy) userId is only trusted
when its recorded platform matches.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from talentdash.analytics.cache_gate import parse_timestamp
from talentdash.analytics.identifiers import is_plausible_external_id
from talentdash.analytics.normalize import normalize_metrics
from talentdash.analytics.types import SnapshotRecord
from talentdash.config import SUPPORTED_PLATFORMS

logger = logging.getLogger('services.legacy_notes')

# Bookkeeping keys from the old blob that are not analytics
_LEGACY_META_KEYS = (
    'platform', 'latest_platform', 'modash_user_id', 'last_refreshed',
    'refreshed_by', 'source', 'bulk_refresh', 'cached_payload',
    'profile_snapshot', 'platforms',
)


@dataclass
class LegacyNotes:
    crm_notes: Optional[str] = None
    external_ids: Dict[str, str] = field(default_factory=dict)
    snapshots: Dict[str, SnapshotRecord] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.external_ids and not self.snapshots


def _platform_snapshot(platform, data) -> Optional[SnapshotRecord]:
    if not isinstance(data, dict):
        return None
    raw = {k: v for k, v in data.items() if k not in _LEGACY_META_KEYS}
    cached = data.get('cached_payload') or data.get('profile_snapshot')
    if isinstance(cached, dict):
        raw = {**cached, **raw}
    for id_key in ('userId', 'user_id', 'external_id'):
        raw.pop(id_key, None)
    if not raw:
        return None
    payload = normalize_metrics(raw)
    return SnapshotRecord(
        platform=platform,
        payload=payload,
        last_refreshed=parse_timestamp(data.get('last_refreshed')),
    )


def parse_legacy_notes(raw_notes) -> LegacyNotes:
    """Never raises; plain-text notes come back as crm_notes untouched."""
    if not raw_notes or not isinstance(raw_notes, str):
        return LegacyNotes(crm_notes=raw_notes or None)
    try:
        blob = json.loads(raw_notes)
    except ValueError:
        return LegacyNotes(crm_notes=raw_notes)
    if not isinstance(blob, dict):
        return LegacyNotes(crm_notes=raw_notes)

    text = blob.get('text') or blob.get('notes')
    result = LegacyNotes(crm_notes=text if isinstance(text, str) and text.strip() else None)

    modash = blob.get('modash_data')
    if not isinstance(modash, dict):
        return result

    platforms = modash.get('platforms') if isinstance(modash.get('platforms'), dict) else {}
    for name, data in platforms.items():
        platform = (name or '').lower()
        if platform not in SUPPORTED_PLATFORMS or not isinstance(data, dict):
            continue
        user_id = data.get('userId')
        if is_plausible_external_id(user_id, platform):
            result.external_ids[platform] = user_id.strip()
        elif user_id:
            logger.info("Dropping implausible legacy %s id %r", platform, user_id)
        snapshot = _platform_snapshot(platform, data)
        if snapshot is not None:
            result.snapshots[platform] = snapshot

    legacy_platform = (modash.get('platform') or '').lower()
    if legacy_platform in SUPPORTED_PLATFORMS:
        legacy_id = modash.get('userId') or modash.get('modash_user_id')
        if legacy_platform not in result.external_ids and is_plausible_external_id(legacy_id, legacy_platform):
            result.external_ids[legacy_platform] = legacy_id.strip()
        if legacy_platform not in result.snapshots:
            snapshot = _platform_snapshot(legacy_platform, modash)
            if snapshot is not None:
                result.snapshots[legacy_platform] = snapshot

    return result


def migrate_influencer_notes(session, influencer) -> bool:
    """
    Move one influencer's legacy blob into typed rows. Caller commits.

    Existing external ids and newer snapshots are left alone.
    Returns True if anything changed.
    """
    from talentdash.models.analytics_snapshot import AnalyticsSnapshot
    from talentdash.models.platform_link import PlatformLink

    parsed = parse_legacy_notes(influencer.notes)
    if parsed.is_empty:
        return False

    for platform, external_id in parsed.external_ids.items():
        link = session.query(PlatformLink).filter_by(
            influencer_id=influencer.id, platform=platform,
        ).first()
        if link is None:
            link = PlatformLink(influencer_id=influencer.id, platform=platform)
            session.add(link)
        if not link.external_id:
            link.external_id = external_id

    for platform, snapshot in parsed.snapshots.items():
        row = session.query(AnalyticsSnapshot).filter_by(
            influencer_id=influencer.id, platform=platform,
        ).first()
        existing = parse_timestamp(row.last_refreshed) if row is not None else None
        incoming = snapshot.last_refreshed
        if row is not None and existing is not None and (incoming is None or incoming <= existing):
            continue
        if row is None:
            row = AnalyticsSnapshot(influencer_id=influencer.id, platform=platform)
            session.add(row)
        row.payload = snapshot.payload
        row.last_refreshed = incoming
        row.refreshed_by = 'legacy_notes_migration'

    influencer.notes = parsed.crm_notes
    return True
