"""
Identity store — the engine's read/write contract over Postgres.

Reads return plain dataclasses (InfluencerRecord) so the analytics engine
never holds a live session. Writes are limited to the two things an analytics
refresh may touch: the snapshot slot and PlatformLink.external_id. CRM fields
are never written from here except through link_platform() (onboarding).
"""
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from talentdash.analytics.identifiers import (
    is_plausible_external_id, normalize_platform,
)
from talentdash.analytics.types import (
    InfluencerIdentity, InfluencerNotFound, InfluencerRecord,
    PlatformLinkRecord, SnapshotRecord,
)
from talentdash.database import get_session
from talentdash.models.analytics_snapshot import AnalyticsSnapshot
from talentdash.models.influencer import Influencer
from talentdash.models.platform_link import PlatformLink

logger = logging.getLogger('services.identity_store')


class IdentityStore:

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _session(self):
        return (self._session_factory or get_session)()

    # ── Reads ─────────────────────────────────────────────────────────

    def get_influencer(self, influencer_id: str) -> InfluencerRecord:
        """Identity, platform links and cached snapshots in one read."""
        session = self._session()
        try:
            influencer = session.get(Influencer, influencer_id)
            if influencer is None:
                raise InfluencerNotFound(influencer_id)

            links = {
                link.platform: PlatformLinkRecord(
                    platform=link.platform,
                    username=link.username,
                    external_id=link.external_id,
                )
                for link in influencer.platform_links
            }
            snapshots = {
                snap.platform: SnapshotRecord(
                    platform=snap.platform,
                    payload=dict(snap.payload or {}),
                    last_refreshed=snap.last_refreshed,
                )
                for snap in influencer.snapshots
            }
            identity = InfluencerIdentity(
                id=influencer.id,
                display_name=influencer.display_name or '',
                platforms=sorted(links),
                assigned_to=influencer.assigned_to,
                labels=list(influencer.labels or []),
                notes=influencer.notes,
            )
            return InfluencerRecord(identity=identity, links=links, snapshots=snapshots)
        finally:
            session.close()

    def list_influencer_ids(self, platform: str = None) -> List[str]:
        """Influencer ids with a linked account (optionally on one platform)."""
        session = self._session()
        try:
            query = session.query(PlatformLink.influencer_id).distinct()
            if platform:
                query = query.filter(PlatformLink.platform == normalize_platform(platform))
            return [row[0] for row in query.order_by(PlatformLink.influencer_id).all()]
        finally:
            session.close()

    # ── Writes (analytics refresh) ────────────────────────────────────

    def write_analytics_snapshot(self, influencer_id: str, platform: str,
                                 payload: Dict[str, Any], timestamp: datetime,
                                 refreshed_by: Optional[str] = None):
        """Overwrite the (influencer, platform) snapshot slot."""
        platform = normalize_platform(platform)
        session = self._session()
        try:
            snap = session.query(AnalyticsSnapshot).filter_by(
                influencer_id=influencer_id,
                platform=platform,
            ).first()
            if snap is None:
                snap = AnalyticsSnapshot(influencer_id=influencer_id, platform=platform)
                session.add(snap)
            snap.payload = dict(payload)
            snap.last_refreshed = timestamp
            snap.refreshed_by = refreshed_by
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def update_platform_link(self, influencer_id: str, platform: str, external_id: str = None):
        """Set the provider id on an existing platform link."""
        platform = normalize_platform(platform)
        session = self._session()
        try:
            link = session.query(PlatformLink).filter_by(
                influencer_id=influencer_id,
                platform=platform,
            ).first()
            if link is None:
                link = PlatformLink(influencer_id=influencer_id, platform=platform)
                session.add(link)
            link.external_id = external_id
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ── Writes (onboarding / linking) ─────────────────────────────────

    def link_platform(self, influencer_id: str, platform: str,
                      username: str = None, external_id: str = None) -> PlatformLinkRecord:
        """
        Create or update a platform link.

        Raises ValueError for an implausible external id (e.g. an internal
        UUID pasted into the provider-id field) and InfluencerNotFound.
        """
        platform = normalize_platform(platform)
        if external_id is not None and not is_plausible_external_id(external_id, platform):
            raise ValueError(f"'{external_id}' is not a valid {platform} provider id")

        session = self._session()
        try:
            if session.get(Influencer, influencer_id) is None:
                raise InfluencerNotFound(influencer_id)

            link = session.query(PlatformLink).filter_by(
                influencer_id=influencer_id,
                platform=platform,
            ).first()
            if link is None:
                link = PlatformLink(influencer_id=influencer_id, platform=platform)
                session.add(link)
            if username is not None:
                link.username = username.strip() or None
            if external_id is not None:
                link.external_id = external_id.strip()
            session.commit()
            logger.info("Linked %s account for influencer %s", platform, influencer_id)
            return PlatformLinkRecord(platform=platform, username=link.username, external_id=link.external_id)
        except InfluencerNotFound:
            session.rollback()
            raise
        except Exception:
            session.rollback()
            logger.error("Failed to link %s for influencer %s", platform, influencer_id, exc_info=True)
            raise
        finally:
            session.close()
