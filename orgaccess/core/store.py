"""Store access helpers: every SQLAlchemy failure leaves core as UpstreamError."""
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import UpstreamError

logger = logging.getLogger(__name__)


def rollback_quietly(session: Session) -> None:
    """Roll back, logging instead of raising when the connection is gone."""
    try:
        session.rollback()
    except Exception as exc:
        logger.warning("Rollback failed: %s", exc)


@contextmanager
def store_errors(session: Session, action: str) -> Iterator[None]:
    """Map SQLAlchemy failures inside the block to UpstreamError.

    Service errors raised inside the block pass through unchanged.

    Usage:
        with store_errors(ctx.session, "deactivating member"):
            ...
    """
    try:
        yield
    except SQLAlchemyError as exc:
        rollback_quietly(session)
        logger.error("Store failure while %s: %s", action, exc)
        raise UpstreamError(f"Store unavailable while {action}: {exc.__class__.__name__}", "STORE_ERROR") from exc
