"""Flask application factory.

This module provides the create_app() factory function for initializing
the Flask application with the store, the identity provider, blueprints
and error handlers.

Run with gunicorn as ``gunicorn 'orgaccess.flask_app:create_app()'``.
"""
from __future__ import annotations
import logging

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from orgaccess.config import AppConfig, load_settings
from orgaccess.core.identity import KeycloakIdentityProvider
from orgaccess.db import init_db

# JSON bodies on this API are small
MAX_CONTENT_LENGTH = 64 * 1024


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: AppConfig | None = None, identity_provider=None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings; loaded from the environment when omitted
        identity_provider: IdentityProvider implementation; a Keycloak-backed
            one is built from ``cfg`` when omitted
    """
    if cfg is None:
        cfg = load_settings()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    init_db(app, cfg.database_url)

    if identity_provider is None:
        identity_provider = KeycloakIdentityProvider.from_settings(cfg)
    app.extensions["orgaccess.identity"] = identity_provider

    # Register blueprints
    from orgaccess.api import errors, health, invitations, members, organization

    app.register_blueprint(health.bp)
    app.register_blueprint(members.bp)
    app.register_blueprint(invitations.bp)
    app.register_blueprint(organization.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info(f"[flask_app] Mode={mode_label}; realm={cfg.keycloak_realm}")
    if cfg.demo_mode:
        app.logger.warning("[flask_app] Demo mode active - do not deploy with demo credentials")

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8000)
