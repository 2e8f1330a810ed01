"""Server lifecycle state shared between signal handlers and handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass
class ServerLifecycle:
    """Tracks startup time and graceful shutdown for `autoreel serve`."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for graceful shutdown before cancelling tasks."""

    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """UTC timestamp when the server started."""

    shutdown_initiated: datetime | None = None
    """UTC timestamp when shutdown began, None while running."""

    @property
    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()

    @property
    def is_shutting_down(self) -> bool:
        return self.shutdown_initiated is not None

    def initiate_shutdown(self) -> None:
        """Mark shutdown as started. Repeated calls are ignored."""
        if self.shutdown_initiated is None:
            self.shutdown_initiated = datetime.now(timezone.utc)
            logger.info(
                "Shutdown initiated (timeout %.1fs)", self.shutdown_timeout
            )
