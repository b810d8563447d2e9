"""
PlatformLink model — one row per influencer per linked social platform.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from talentdash.database import Base


class PlatformLink(Base):
    __tablename__ = 'influencer_platforms'

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_id = Column(Text, ForeignKey('influencers.id'), nullable=False, index=True)
    platform = Column(Text, nullable=False)          # lowercase: instagram / tiktok / youtube
    username = Column(Text, nullable=True)           # raw handle, may carry a leading '@'
    external_id = Column(Text, nullable=True)        # provider-issued, platform-scoped
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    influencer = relationship('Influencer', back_populates='platform_links')

    __table_args__ = (
        UniqueConstraint('influencer_id', 'platform', name='uq_platform_link_influencer_platform'),
    )
