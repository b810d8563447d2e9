"""Create influencers, influencer_platforms and analytics_snapshots

Revision ID: 3f9b6c1d2e84
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9b6c1d2e84'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'influencers',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('display_name', sa.Text(), nullable=False, server_default=''),
        sa.Column('assigned_to', sa.Text(), nullable=True),
        sa.Column('labels', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'influencer_platforms',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('influencer_id', sa.Text(), sa.ForeignKey('influencers.id'), nullable=False),
        sa.Column('platform', sa.Text(), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('external_id', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('influencer_id', 'platform', name='uq_platform_link_influencer_platform'),
    )
    op.create_index('ix_influencer_platforms_influencer_id', 'influencer_platforms', ['influencer_id'])

    op.create_table(
        'analytics_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('influencer_id', sa.Text(), sa.ForeignKey('influencers.id'), nullable=False),
        sa.Column('platform', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('last_refreshed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refreshed_by', sa.Text(), nullable=True),
        sa.UniqueConstraint('influencer_id', 'platform', name='uq_snapshot_influencer_platform'),
    )
    op.create_index('ix_analytics_snapshots_influencer_id', 'analytics_snapshots', ['influencer_id'])


def downgrade() -> None:
    op.drop_index('ix_analytics_snapshots_influencer_id', table_name='analytics_snapshots')
    op.drop_table('analytics_snapshots')
    op.drop_index('ix_influencer_platforms_influencer_id', table_name='influencer_platforms')
    op.drop_table('influencer_platforms')
    op.drop_table('influencers')
