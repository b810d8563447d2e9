"""
Influencer model — internal identity + CRM fields for one roster member.

Analytics never write to this table; refreshes only touch
influencer_platforms.external_id and analytics_snapshots.
"""
import uuid

from sqlalchemy import Column, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from talentdash.database import Base


class Influencer(Base):
    __tablename__ = 'influencers'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(Text, nullable=False, default='')
    assigned_to = Column(Text, nullable=True)
    labels = Column(JSON, default=list)
    notes = Column(Text, nullable=True)  # CRM free text only
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    platform_links = relationship(
        'PlatformLink', back_populates='influencer',
        cascade='all, delete-orphan', order_by='PlatformLink.platform',
    )
    snapshots = relationship(
        'AnalyticsSnapshot', back_populates='influencer',
        cascade='all, delete-orphan',
    )
