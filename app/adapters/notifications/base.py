from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class NotificationResult:
    """Delivery outcome of a single notification.

    Attributes:
        ok: Whether the sink accepted the payload.
        http_status: Status code returned by the sink, when one was received.
        error: Actor-safe error description when delivery failed.
    """

    ok: bool
    http_status: int | None = None
    error: str | None = None


class AbstractNotifier(ABC):
    """Interface for fire-and-forget notification sinks."""

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether the sink has a destination configured."""
        ...

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> NotificationResult:
        """Deliver ``payload``.

        Implementations never raise; every failure is reported through the
        returned NotificationResult.
        """
        ...

    async def close(self) -> None:
        return None
