"""Base class for services bound to one request-scoped session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from habit_tracker.core.logging import get_logger
from habit_tracker.core.time import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from sqlmodel.ext.asyncio.session import AsyncSession


class DBService:
    """Holds the session handle, a clock, and a module logger."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.clock = clock
        self.logger = get_logger(type(self).__module__)
