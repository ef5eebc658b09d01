from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_db(app, database_url: str):
    """Initialize the database with the app"""
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    db.init_app(app)

    from orgaccess.db.models import Organization, Profile, Invitation, ActivityLog  # noqa: F401

    # Create tables if they don't exist
    with app.app_context():
        db.create_all()
