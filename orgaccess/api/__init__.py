"""HTTP surface: JSON blueprints over orgaccess.core."""
from flask import current_app, request

from orgaccess.core.context import ServiceContext
from orgaccess.core.errors import ValidationError
from orgaccess.db import db, utcnow


def service_context() -> ServiceContext:
    """Build the ServiceContext for the current request."""
    return ServiceContext(
        session=db.session,
        identity=current_app.extensions["orgaccess.identity"],
        settings=current_app.config["APP_CONFIG"],
        clock=current_app.config.get("ORGACCESS_CLOCK", utcnow),
    )


def json_body() -> dict:
    """Request body as a dict; anything else is a ValidationError."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "INVALID_BODY")
    return payload


def field(payload: dict, name: str, alias: str = None):
    """Read a camelCase field, accepting its snake_case alias."""
    if name in payload:
        return payload[name]
    if alias:
        return payload.get(alias)
    return None
