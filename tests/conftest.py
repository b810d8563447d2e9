"""Shared test fixtures."""
import time
from unittest.mock import patch, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talentdash.database import Base, import_models


class FakeRedis:
    """Minimal in-memory Redis fake (strings with TTL + hashes + pipeline)."""

    def __init__(self):
        self.get_store = {}
        self.expiry = {}
        self.hash_store = {}

    def _expire(self, key):
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.get_store.pop(key, None)
            self.expiry.pop(key, None)

    def get(self, key):
        self._expire(key)
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = value
        self.expiry.pop(key, None)

    def setex(self, key, seconds, value):
        self.get_store[key] = value
        self.expiry[key] = time.time() + seconds

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.expiry.pop(k, None)
            self.hash_store.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = value

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Fake Redis pipeline that queues ops and applies them on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def hincrby(self, key, field, amount):
        self._ops.append(('hincrby', key, field, amount))
        return self

    def hset(self, key, field, value):
        self._ops.append(('hset', key, field, value))
        return self

    def execute(self):
        for op in self._ops:
            getattr(self._redis, op[0])(*op[1:])
        self._ops = []


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def session_factory(db_session):
    """Factory handing out the shared test session.

    close() is disabled so store methods closing their session in a finally
    block don't detach objects the test still holds.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    yield lambda: db_session
    db_session.close = _real_close


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """Route default IdentityStore sessions to the test session."""
    with patch('talentdash.services.identity_store.get_session', side_effect=session_factory):
        yield


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def make_influencer(db_session):
    """Factory fixture — persists an Influencer with optional links + snapshots.

    links:     {'instagram': {'username': '@alice', 'external_id': '123'}}
    snapshots: {'instagram': ({'followers': 10}, datetime)}
    """
    from talentdash.models.analytics_snapshot import AnalyticsSnapshot
    from talentdash.models.influencer import Influencer
    from talentdash.models.platform_link import PlatformLink

    def _make(influencer_id='inf-001', display_name='Alice Example', links=None, snapshots=None, **fields):
        influencer = Influencer(
            id=influencer_id,
            display_name=display_name,
            assigned_to=fields.get('assigned_to', 'manager@agency.test'),
            labels=fields.get('labels', ['travel']),
            notes=fields.get('notes', 'Met at VidCon'),
        )
        db_session.add(influencer)
        for platform, data in (links or {}).items():
            db_session.add(PlatformLink(
                influencer_id=influencer_id,
                platform=platform,
                username=data.get('username'),
                external_id=data.get('external_id'),
            ))
        for platform, (payload, refreshed) in (snapshots or {}).items():
            db_session.add(AnalyticsSnapshot(
                influencer_id=influencer_id,
                platform=platform,
                payload=payload,
                last_refreshed=refreshed,
                refreshed_by='test',
            ))
        db_session.commit()
        return influencer
    return _make


@pytest.fixture
def gateway():
    """Provider gateway mock. Tests set return_value / side_effect per lookup."""
    mock = MagicMock()
    mock.fetch_by_external_id.return_value = {'external_id': '17841400000000001', 'followers': 1000}
    mock.fetch_by_username.return_value = {'external_id': '17841400000000001', 'followers': 1000}
    return mock


@pytest.fixture
def analytics_service(session_factory, gateway, fake_redis):
    """AnalyticsService over the SQLite store, a mock gateway and a FakeRedis guard."""
    from talentdash.analytics.service import build_service
    from talentdash.services.rate_limit import RateLimitGuard
    guard = RateLimitGuard('modash', fake_redis, cooldown=60)
    return build_service(session_factory=session_factory, gateway=gateway, guard=guard)


@pytest.fixture
def app(analytics_service, fake_redis):
    """Flask test app wired to the test service and FakeRedis cooldown guards."""
    from talentdash import create_app
    from talentdash.services import rate_limit
    saved = dict(rate_limit._registry)
    with patch('talentdash.extensions.redis_client', fake_redis):
        app = create_app(analytics_service=analytics_service)
    app.config['TESTING'] = True
    yield app
    rate_limit._registry.clear()
    rate_limit._registry.update(saved)


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c
