"""
AnalyticsSnapshot model — cached provider payload, one row per (influencer, platform).

Written only by the sync writer via IdentityStore.write_analytics_snapshot().
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from talentdash.database import Base


class AnalyticsSnapshot(Base):
    __tablename__ = 'analytics_snapshots'
    __table_args__ = (
        UniqueConstraint('influencer_id', 'platform', name='uq_snapshot_influencer_platform'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_id = Column(Text, ForeignKey('influencers.id'), nullable=False, index=True)
    platform = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    last_refreshed = Column(DateTime(timezone=True), nullable=True)
    refreshed_by = Column(Text, nullable=True)

    influencer = relationship('Influencer', back_populates='snapshots')
