"""
Health routes — liveness + provider cooldown state.
"""
from flask import Blueprint, jsonify

from talentdash.services.rate_limit import get_all_guards

bp = Blueprint('health', __name__)


@bp.route('/health')
def health():
    return jsonify({'status': 'healthy'}), 200


@bp.route('/api/health')
def api_health():
    """Cooldown state for every rate-limited provider."""
    return jsonify({
        'services': {name: guard.get_health() for name, guard in get_all_guards().items()},
    })


@bp.route('/api/health/<name>/reset', methods=['POST'])
def reset_cooldown(name):
    """Manually clear a provider cooldown."""
    guard = get_all_guards().get(name)
    if guard is None:
        return jsonify({'error': f'Unknown service: {name}'}), 404
    guard.reset()
    return jsonify({'ok': True, 'service': guard.get_health()})
