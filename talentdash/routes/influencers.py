"""
Influencer analytics routes — merged analytics view, manual/bulk refresh, platform linking.
"""
import logging
from flask import Blueprint, current_app, request, jsonify

from talentdash.analytics.types import ErrorKind, InfluencerNotFound

logger = logging.getLogger(__name__)

bp = Blueprint('influencers', __name__)


def _service():
    return current_app.extensions['analytics_service']


def _analytics_response(influencer_id, platform, force=False):
    try:
        result = _service().resolve_analytics(influencer_id, platform, force=force)
    except InfluencerNotFound:
        return jsonify({'error': 'Influencer not found'}), 404
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    body = result.to_dict()
    if result.error == ErrorKind.NOT_CONFIGURED:
        body['state'] = 'no_linked_account'
    elif result.error == ErrorKind.RATE_LIMITED:
        body['state'] = 'cooldown'
    return jsonify(body)


# ── Analytics view ───────────────────────────────────────────────────────────

@bp.route('/api/influencers/<influencer_id>/analytics')
def get_analytics(influencer_id):
    """Merged identity + analytics view (served from cache when fresh)."""
    platform = request.args.get('platform', 'instagram')
    return _analytics_response(influencer_id, platform)


@bp.route('/api/influencers/<influencer_id>/refresh-analytics', methods=['POST'])
def refresh_analytics(influencer_id):
    """Manual refresh — bypasses the cache gate, still honours the provider cooldown."""
    data = request.get_json(silent=True) or {}
    platform = data.get('platform') or request.args.get('platform', 'instagram')
    return _analytics_response(influencer_id, platform, force=True)


@bp.route('/api/influencers/bulk-refresh-analytics', methods=['POST'])
def bulk_refresh_analytics():
    """Refresh every stale snapshot, one at a time; stops at the first rate limit."""
    data = request.get_json(silent=True) or {}
    try:
        summary = _service().refresh_all(platform=data.get('platform'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error("Bulk refresh failed", exc_info=True)
        return jsonify({'error': str(e)}), 500
    return jsonify(summary)


# ── Platform linking ─────────────────────────────────────────────────────────

@bp.route('/api/influencers/<influencer_id>/platforms', methods=['POST'])
def link_platform(influencer_id):
    """Link (or update) a platform account. Rejects internal ids as provider ids."""
    data = request.get_json(silent=True) or {}
    platform = data.get('platform', '')
    username = data.get('username')
    external_id = data.get('external_id') or None

    if not platform:
        return jsonify({'error': 'Platform is required'}), 400
    for field, value in (('platform', platform), ('username', username), ('external_id', external_id)):
        if value is not None and not isinstance(value, str):
            return jsonify({'error': f'{field} must be a string'}), 400
    if not (username or '').strip() and not external_id:
        return jsonify({'error': 'Username or external_id is required'}), 400

    try:
        link = _service().store.link_platform(
            influencer_id, platform, username=username, external_id=external_id,
        )
    except InfluencerNotFound:
        return jsonify({'error': 'Influencer not found'}), 404
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': str(e)}), 500

    return jsonify({
        'platform': link.platform,
        'username': link.username,
        'external_id': link.external_id,
    }), 201
