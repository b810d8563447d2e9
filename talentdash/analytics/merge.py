"""
Merge / reconciliation — one view from identity data + analytics payload.

Field ownership:
  - IDENTITY_FIELDS come from InfluencerIdentity, always.
  - Everything else comes from the payload (fresh fetch or last snapshot).

Order matters: the payload is laid down first and the identity set is
overlaid last, so identity wins only for its fixed set and analytics keys
are never hidden behind identity defaults.
"""
import copy
import logging
from typing import Dict, Any

from talentdash.analytics.normalize import normalize_metrics

logger = logging.getLogger('analytics.merge')

IDENTITY_FIELDS = (
    'id',
    'display_name',
    'platforms',
    'assigned_to',
    'labels',
    'notes',
)


def merge(identity, payload=None, platform: str = None) -> Dict[str, Any]:
    """
    Build the merged analytics view. Never raises.

    payload may be a provider payload dict, a SnapshotRecord, or None.
    """
    source = getattr(payload, 'payload', payload)
    if source is not None and not isinstance(source, dict):
        logger.warning("Ignoring non-dict analytics payload (%s)", type(source).__name__)
        source = None

    view = copy.deepcopy(normalize_metrics(source)) if source else {}

    identity_values = identity.to_dict() if hasattr(identity, 'to_dict') else dict(identity or {})
    for key in IDENTITY_FIELDS:
        view[key] = identity_values.get(key)

    if platform:
        view['platform'] = platform
    return view
