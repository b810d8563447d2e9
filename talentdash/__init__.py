"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints and wires the
analytics service (one instance per app, so the sync writer's dedup memory
is shared by every request the process serves).
"""
from flask import Flask


def create_app(analytics_service=None):
    """Create and configure the Flask application."""
    from talentdash.logging_config import configure_logging
    from talentdash.config import SECRET_KEY

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY

    # Register blueprints
    from talentdash.routes.health import bp as health_bp
    from talentdash.routes.influencers import bp as influencers_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(influencers_bp)

    # Provider cooldown guards (Redis-backed, shared across workers)
    from talentdash.extensions import redis_client
    from talentdash.services.rate_limit import init_guards
    init_guards(redis_client)

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic; no create_all() here.
    from talentdash.database import import_models
    import_models()

    if analytics_service is None:
        from talentdash.analytics.service import build_service
        analytics_service = build_service()
    app.extensions['analytics_service'] = analytics_service

    return app
