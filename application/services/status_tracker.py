import logging
import threading
from datetime import UTC, datetime

from domain.models.quote import SourceStatus

logger = logging.getLogger(__name__)


class StatusTracker:
    """Health ledger holding the last outcome of every quote source seen so far."""

    FAILURE_THRESHOLD = 3

    def __init__(self):
        self._status: dict[str, SourceStatus] = {}
        self._lock = threading.Lock()

    def record(
        self,
        source: str,
        success: bool,
        error: str | None = None,
        timestamp: datetime | None = None,
    ) -> SourceStatus:
        timestamp = timestamp or datetime.now(UTC)
        with self._lock:
            previous = self._status.get(source)
            failures = 0 if success else (previous.consecutive_failures if previous else 0) + 1
            status = SourceStatus(
                source=source,
                success=success,
                error=None if success else error,
                last_attempt=timestamp,
                consecutive_failures=failures,
            )
            self._status[source] = status

        if failures == self.FAILURE_THRESHOLD:
            logger.warning(f"Source {source} is unhealthy after {failures} consecutive failures")
        return status

    def record_success(self, source: str) -> SourceStatus:
        return self.record(source, success=True)

    def record_failure(self, source: str, reason: str) -> SourceStatus:
        return self.record(source, success=False, error=reason)

    def get(self, source: str) -> SourceStatus | None:
        with self._lock:
            return self._status.get(source)

    def snapshot(self) -> dict[str, SourceStatus]:
        with self._lock:
            return dict(self._status)

    def is_healthy(self, source: str) -> bool:
        status = self.get(source)
        if status is None:
            return False
        return status.success and status.consecutive_failures < self.FAILURE_THRESHOLD
