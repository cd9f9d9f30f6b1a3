"""Sinks for dispatch lifecycle events.

Dispatches finish after the webhook response is sent, so these emitters
are the only place their outcome shows up.

- EventEmitter: abstract interface
- LoggingEventEmitter: one log record per event
- CompositeEventEmitter: fans out to several sinks, isolating failures
- NullEventEmitter: discards events
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable, List, Optional

from src.linear_agent.events.models import DispatchEvent, EventType

logger = logging.getLogger(__name__)


class EventEmitter(ABC):
    """Receives dispatch events from the background dispatch context."""

    @abstractmethod
    async def emit(self, event: DispatchEvent) -> None:
        """Record a dispatch event."""

    async def close(self) -> None:
        """Release resources held by the emitter; no-op by default."""


class LoggingEventEmitter(EventEmitter):
    """Writes each event as a log record with the event fields as extras.

    DISPATCH_FAILED is logged at ERROR so failed sessions stand out;
    the other events are INFO.
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    async def emit(self, event: DispatchEvent) -> None:
        level = logging.ERROR if event.event_type is EventType.DISPATCH_FAILED else logging.INFO
        self._logger.log(
            level,
            "Dispatch %s: session=%s organization=%s",
            event.event_type.value,
            event.session_id,
            event.organization_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Forwards events to several emitters.

    A child that raises is logged and skipped; the remaining children
    still receive the event.
    """

    def __init__(self, emitters: Optional[Iterable[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = list(emitters or [])

    def add_emitter(self, emitter: EventEmitter) -> None:
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        return list(self._emitters)

    async def emit(self, event: DispatchEvent) -> None:
        await self._each(
            "emit",
            lambda child: child.emit(event),
            session_id=event.session_id,
            event_type=event.event_type.value,
        )

    async def close(self) -> None:
        await self._each("close", lambda child: child.close())

    async def _each(
        self,
        operation: str,
        call: Callable[[EventEmitter], Awaitable[None]],
        **context: str,
    ) -> None:
        for child in self._emitters:
            try:
                await call(child)
            except Exception as e:
                logger.error(
                    "Event emitter %s failed to %s: %s",
                    type(child).__name__,
                    operation,
                    e,
                    extra={"emitter_type": type(child).__name__, **context},
                )


class NullEventEmitter(EventEmitter):
    """Discards every event."""

    async def emit(self, event: DispatchEvent) -> None:
        return None
