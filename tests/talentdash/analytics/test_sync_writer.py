"""Tests for talentdash.analytics.sync_writer — dedup, id write-back, monotonic timestamps."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from talentdash.analytics.sync_writer import DedupMemory, SyncWriter, dedup_key
from talentdash.analytics.types import PlatformLinkRecord, SyncOutcome

PROVIDER_ID = '17841400000000001'
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MagicMock()


def _payload(**overrides):
    payload = {'external_id': PROVIDER_ID, 'followers': 1000, 'engagement_rate': 0.05, 'avg_views': 300}
    payload.update(overrides)
    return payload


class TestDedupMemory:
    """Tests for the bounded LRU."""

    def test_evicts_least_recently_used(self):
        memory = DedupMemory(max_entries=2)
        memory.remember(('a', 'instagram'), ('k',), T0)
        memory.remember(('b', 'instagram'), ('k',), T0)
        memory.get(('a', 'instagram'))
        memory.remember(('c', 'instagram'), ('k',), T0)
        assert ('a', 'instagram') in memory
        assert ('b', 'instagram') not in memory
        assert len(memory) == 2

    def test_minimum_size_is_one(self):
        assert DedupMemory(max_entries=0).max_entries == 1


class TestDedupKey:
    """Tests for dedup_key()."""

    def test_falls_back_to_link_username(self):
        link = PlatformLinkRecord(platform='instagram', username='@alice')
        key = dedup_key('inf-001', 'instagram', {'followers': 1}, link)
        assert key[2] == 'alice'

    def test_metrics_change_key(self):
        assert dedup_key('inf-001', 'instagram', _payload()) != dedup_key('inf-001', 'instagram', _payload(followers=1001))


class TestSyncWriter:
    """Tests for SyncWriter.persist()."""

    def test_first_write(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        outcome = writer.persist('inf-001', 'instagram', _payload())
        assert outcome == SyncOutcome.WRITTEN
        store.write_analytics_snapshot.assert_called_once_with(
            'inf-001', 'instagram', _payload(), T0, refreshed_by='analytics_engine',
        )

    def test_identical_payload_deduplicated(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        outcome = writer.persist('inf-001', 'instagram', _payload())
        assert outcome == SyncOutcome.DEDUPLICATED
        assert store.write_analytics_snapshot.call_count == 1

    def test_changed_metrics_written(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        assert writer.persist('inf-001', 'instagram', _payload(followers=2000)) == SyncOutcome.WRITTEN
        assert store.write_analytics_snapshot.call_count == 2

    def test_timestamps_strictly_increase(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        writer.persist('inf-001', 'instagram', _payload(followers=2000))
        first = store.write_analytics_snapshot.call_args_list[0].args[3]
        second = store.write_analytics_snapshot.call_args_list[1].args[3]
        assert second > first

    def test_timestamp_bumped_past_previous_refresh(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        later = T0 + timedelta(seconds=5)
        writer.persist('inf-001', 'instagram', _payload(), previous_refreshed=later)
        written = store.write_analytics_snapshot.call_args.args[3]
        assert written > later

    def test_external_id_stored_when_link_has_none(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        link = PlatformLinkRecord(platform='instagram', username='alice')
        writer.persist('inf-001', 'instagram', _payload(), link=link)
        store.update_platform_link.assert_called_once_with('inf-001', 'instagram', external_id=PROVIDER_ID)

    def test_existing_external_id_not_overwritten(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        link = PlatformLinkRecord(platform='instagram', username='alice', external_id='999')
        writer.persist('inf-001', 'instagram', _payload(), link=link)
        store.update_platform_link.assert_not_called()

    def test_implausible_external_id_not_stored(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        link = PlatformLinkRecord(platform='youtube', username='alice')
        writer.persist('inf-001', 'youtube', _payload(external_id='alice_channel'), link=link)
        store.update_platform_link.assert_not_called()
        store.write_analytics_snapshot.assert_called_once()

    def test_store_failure_reported_not_raised(self, store):
        store.write_analytics_snapshot.side_effect = RuntimeError('db down')
        writer = SyncWriter(store, clock=lambda: T0)
        assert writer.persist('inf-001', 'instagram', _payload()) == SyncOutcome.FAILED

    def test_failed_write_not_remembered(self, store):
        store.write_analytics_snapshot.side_effect = [RuntimeError('db down'), None]
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        assert writer.persist('inf-001', 'instagram', _payload()) == SyncOutcome.WRITTEN


class TestDedupExpiry:
    """Identical payloads are only skipped while the last write is current."""

    def test_identical_payload_rewritten_after_ttl(self, store):
        now = [T0]
        writer = SyncWriter(store, clock=lambda: now[0], ttl=3600)
        writer.persist('inf-001', 'instagram', _payload())
        now[0] = T0 + timedelta(seconds=3601)
        assert writer.persist('inf-001', 'instagram', _payload()) == SyncOutcome.WRITTEN
        assert store.write_analytics_snapshot.call_count == 2

    def test_identical_payload_rewritten_when_stored_timestamp_differs(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        aged = T0 - timedelta(days=60)
        outcome = writer.persist('inf-001', 'instagram', _payload(), previous_refreshed=aged)
        assert outcome == SyncOutcome.WRITTEN
        assert store.write_analytics_snapshot.call_args.args[3] > T0

    def test_identical_payload_skipped_when_stored_matches(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        writer.persist('inf-001', 'instagram', _payload())
        outcome = writer.persist('inf-001', 'instagram', _payload(), previous_refreshed=T0)
        assert outcome == SyncOutcome.DEDUPLICATED

    def test_written_at(self, store):
        writer = SyncWriter(store, clock=lambda: T0)
        assert writer.written_at('inf-001', 'instagram') is None
        writer.persist('inf-001', 'Instagram', _payload())
        assert writer.written_at('inf-001', 'instagram') == T0
