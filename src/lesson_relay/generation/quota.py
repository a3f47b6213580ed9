"""Advisory usage quota shared between admin (pilot) and student generation.

The check is advisory: a usage store that cannot be read never blocks a
request, and counts are only incremented after an operation succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

from ..config.schemas import QuotaConfig
from ..transport.errors import QuotaExceededError
from .records import UsageType

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class UsageSnapshot:
    pilot_count: int = 0
    student_count: int = 0

    def count_for(self, usage_type: UsageType) -> int:
        return self.pilot_count if usage_type == "PILOT" else self.student_count


@dataclass(slots=True)
class QuotaCheckResult:
    allowed: bool
    usage_type: UsageType
    used: int
    limit: int


class UsageStore(Protocol):
    """Persistence for usage counters (realtime database in production)."""

    async def get_usage(self) -> Optional[UsageSnapshot]: ...

    async def increment(self, usage_type: UsageType) -> None: ...


class InMemoryUsageStore:
    """Process-local usage store for tests and single-node runs."""

    def __init__(self, snapshot: UsageSnapshot | None = None) -> None:
        self._snapshot = snapshot or UsageSnapshot()

    async def get_usage(self) -> Optional[UsageSnapshot]:
        return UsageSnapshot(self._snapshot.pilot_count, self._snapshot.student_count)

    async def increment(self, usage_type: UsageType) -> None:
        if usage_type == "PILOT":
            self._snapshot.pilot_count += 1
        else:
            self._snapshot.student_count += 1


class QuotaGuard:
    """Checks usage before an operation and records it after success."""

    def __init__(self, store: UsageStore | None = None, config: QuotaConfig | None = None) -> None:
        self._store = store
        self._config = config or QuotaConfig()

    def limit_for(self, usage_type: UsageType) -> int:
        if usage_type == "PILOT":
            return self._config.pilot_limit
        return self._config.student_limit

    async def check(self, usage_type: UsageType = "STUDENT") -> QuotaCheckResult:
        limit = self.limit_for(usage_type)
        if self._store is None:
            return QuotaCheckResult(allowed=True, usage_type=usage_type, used=0, limit=limit)
        try:
            usage = await self._store.get_usage()
        except Exception as exc:
            logger.warning("Usage lookup failed, allowing request: %s", exc)
            return QuotaCheckResult(allowed=True, usage_type=usage_type, used=0, limit=limit)
        used = usage.count_for(usage_type) if usage is not None else 0
        return QuotaCheckResult(allowed=used < limit, usage_type=usage_type, used=used, limit=limit)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        usage_type: UsageType = "STUDENT",
    ) -> T:
        result = await self.check(usage_type)
        if not result.allowed:
            label = "AI Pilot" if usage_type == "PILOT" else "Student AI"
            raise QuotaExceededError(
                f"{label} Quota Exceeded ({result.used}/{result.limit})",
                usage_type=usage_type,
                used=result.used,
                limit=result.limit,
            )
        try:
            value = await operation()
        except Exception as exc:
            logger.warning("Operation failed: %s", exc)
            raise
        if self._store is not None:
            try:
                await self._store.increment(usage_type)
            except Exception as exc:
                logger.warning("Failed to record %s usage: %s", usage_type, exc)
        return value


__all__ = [
    "InMemoryUsageStore",
    "QuotaCheckResult",
    "QuotaGuard",
    "UsageSnapshot",
    "UsageStore",
]
