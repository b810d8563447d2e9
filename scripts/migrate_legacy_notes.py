#!/usr/bin/env python3
"""
Split legacy JSON ``notes`` blobs into platform links + analytics snapshots.

Older roster rows stored CRM text and the provider cache together in
influencers.notes. This walks every influencer, moves plausible provider ids
into influencer_platforms.external_id and cached metrics into
analytics_snapshots, and leaves only the CRM text behind in notes.

Usage:
    python scripts/migrate_legacy_notes.py            # migrate everything
    python scripts/migrate_legacy_notes.py --dry-run  # report, write nothing
    python scripts/migrate_legacy_notes.py --batch-size 200

Requires: DATABASE_URL set (or defaults to sqlite:///local.db), schema at head.
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from talentdash.database import get_session, import_models
from talentdash.logging_config import configure_logging
from talentdash.services.legacy_notes import migrate_influencer_notes


def migrate_all(session, dry_run=False, batch_size=100):
    """Migrate every influencer with a notes value. Returns (scanned, migrated)."""
    from talentdash.models.influencer import Influencer

    scanned = migrated = 0
    pending = 0
    query = session.query(Influencer).filter(Influencer.notes.isnot(None)).order_by(Influencer.id)
    for influencer in query.all():
        scanned += 1
        if not migrate_influencer_notes(session, influencer):
            continue
        migrated += 1
        pending += 1
        print(f'  migrated {influencer.id} ({influencer.display_name})')
        if not dry_run and pending >= batch_size:
            session.commit()
            pending = 0

    if dry_run:
        session.rollback()
    else:
        session.commit()
    return scanned, migrated


def main():
    parser = argparse.ArgumentParser(description='Migrate legacy influencer notes blobs')
    parser.add_argument('--dry-run', action='store_true', help='Report what would change, write nothing')
    parser.add_argument('--batch-size', type=int, default=100, help='Commit every N migrated influencers')
    args = parser.parse_args()

    configure_logging()
    import_models()

    session = get_session()
    try:
        scanned, migrated = migrate_all(session, dry_run=args.dry_run, batch_size=args.batch_size)
        label = 'Would migrate' if args.dry_run else 'Migrated'
        print(f'\n{label} {migrated} of {scanned} influencers with notes.')
    except Exception as e:
        session.rollback()
        print(f'Error: {e}')
        raise
    finally:
        session.close()


if __name__ == '__main__':
    main()
