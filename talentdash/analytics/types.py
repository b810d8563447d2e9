"""
Analytics engine contracts.

Plain dataclasses passed between the identity store, resolver, cache gate,
merge engine and sync writer. Nothing here touches the network or the DB.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Any, Optional


class ErrorKind(str, Enum):
    """Terminal conditions surfaced to the view layer."""
    NOT_CONFIGURED = 'not_configured'            # no username or id, permanent
    RATE_LIMITED = 'rate_limited'                # provider 429, back off
    TRANSIENT_ERROR = 'transient_error'          # unexpected provider failure
    PERSISTENCE_FAILURE = 'persistence_failure'  # write-back failed, logged only


class TierStatus(str, Enum):
    """Tagged outcome of one resolution tier."""
    SUCCESS = 'success'
    FALL_THROUGH = 'fall_through'
    ABORT = 'abort'


class SyncOutcome(str, Enum):
    WRITTEN = 'written'
    DEDUPLICATED = 'deduplicated'
    FAILED = 'failed'


class InfluencerNotFound(LookupError):
    """Raised by the identity store for an unknown influencer id."""
    def __init__(self, influencer_id):
        self.influencer_id = influencer_id
        super().__init__(f"Influencer '{influencer_id}' not found")


class ProviderError(Exception):
    """
    Error response from the analytics provider.

    status is the HTTP status code, or None when the request never got a
    response (timeout, DNS, connection reset).
    """
    def __init__(self, status: Optional[int], message: str = '', retry_after: Optional[float] = None):
        self.status = status
        self.message = message
        self.retry_after = retry_after
        super().__init__(f"Provider error {status}: {message}")

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_invalid_identifier(self) -> bool:
        return self.status in (400, 404)


@dataclass
class InfluencerIdentity:
    """Identity + CRM fields. Source of truth for the merged view's fixed set."""
    id: str
    display_name: str = ''
    platforms: List[str] = field(default_factory=list)
    assigned_to: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'platforms': list(self.platforms),
            'assigned_to': self.assigned_to,
            'labels': list(self.labels),
            'notes': self.notes,
        }


@dataclass
class PlatformLinkRecord:
    platform: str
    username: Optional[str] = None
    external_id: Optional[str] = None


@dataclass
class SnapshotRecord:
    platform: str
    payload: Dict[str, Any] = field(default_factory=dict)
    last_refreshed: Any = None  # datetime, ISO string, or None from legacy rows


@dataclass
class InfluencerRecord:
    """Everything the engine reads for one influencer in a single store call."""
    identity: InfluencerIdentity
    links: Dict[str, PlatformLinkRecord] = field(default_factory=dict)
    snapshots: Dict[str, SnapshotRecord] = field(default_factory=dict)


@dataclass
class TierOutcome:
    status: TierStatus
    payload: Optional[Dict[str, Any]] = None
    error: Optional[ErrorKind] = None
    message: str = ''
    retry_after: Optional[float] = None
    called: bool = False              # True if the tier hit the provider

    @classmethod
    def success(cls, payload):
        return cls(TierStatus.SUCCESS, payload=payload, called=True)

    @classmethod
    def fall_through(cls, message='', called=False):
        return cls(TierStatus.FALL_THROUGH, message=message, called=called)

    @classmethod
    def abort(cls, error, message='', retry_after=None, called=False):
        return cls(TierStatus.ABORT, error=error, message=message, retry_after=retry_after, called=called)


@dataclass
class ResolutionResult:
    """Output of Resolver.resolve() — payload on success, otherwise an ErrorKind."""
    payload: Optional[Dict[str, Any]] = None
    tier: str = ''
    external_id: Optional[str] = None
    error: Optional[ErrorKind] = None
    message: str = ''
    retry_after: Optional[float] = None
    calls: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.payload is not None


@dataclass
class AnalyticsResult:
    """What resolve_analytics() hands to the view layer."""
    data: Dict[str, Any]
    stale: bool = False
    error: Optional[ErrorKind] = None
    message: str = ''
    source: str = ''                  # cache / provider / stale_snapshot / identity_only
    last_refreshed: Optional[datetime] = None
    retry_after: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'data': self.data,
            'stale': self.stale,
            'source': self.source,
            'last_refreshed': self.last_refreshed.isoformat() if self.last_refreshed else None,
        }
        if self.error is not None:
            result['error'] = self.error.value
            result['message'] = self.message
        if self.retry_after is not None:
            result['retry_after'] = self.retry_after
        return result
