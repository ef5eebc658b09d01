"""Explicit dependencies for one service call."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from orgaccess.config import AppConfig
from orgaccess.db import utcnow
from .identity import IdentityProvider


@dataclass
class ServiceContext:
    """Store session, identity provider, settings and clock for one request.

    Core operations take a context instead of reaching for module-level clients,
    so tests can run them against an in-memory store and a fake provider.
    """
    session: Session
    identity: IdentityProvider
    settings: AppConfig
    clock: Callable[[], datetime] = field(default=utcnow)

    def now(self) -> datetime:
        return self.clock()
