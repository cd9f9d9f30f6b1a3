"""Background dispatch of agent session events to the agent.

The webhook endpoint must answer Linear quickly, while the agent may take
minutes. The endpoint therefore only schedules a dispatch through a
TaskScheduler provided by the hosting runtime; the runtime runs the task
after the response has been sent and keeps the process alive until it
settles. The client never observes the outcome.

Delivery is at-most-once: a failed dispatch is logged, reported through
the event emitter, and dropped. It is never retried and never re-raised.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from fastapi import BackgroundTasks

from src.linear_agent.agent.client import AgentCapability
from src.linear_agent.events.emitter import EventEmitter, NullEventEmitter
from src.linear_agent.events.models import DispatchEvent, EventType
from src.linear_agent.oauth.models import Credential

logger = logging.getLogger(__name__)

AgentFactory = Callable[[Credential, str], AgentCapability]


class TaskScheduler(Protocol):
    """Runs work after the HTTP response has been flushed.

    Implementations guarantee the scheduled function runs to completion
    (or fails) independently of the request; its result is discarded.
    """

    def schedule(self, func: Callable[..., Awaitable[None]], *args: Any) -> None:
        ...


class BackgroundTaskScheduler:
    """TaskScheduler backed by FastAPI's per-request BackgroundTasks."""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def schedule(self, func: Callable[..., Awaitable[None]], *args: Any) -> None:
        self.background_tasks.add_task(func, *args)


@dataclass(frozen=True)
class DispatchTask:
    """One unit of background work: answer a prompt in an agent session."""

    session_id: str
    organization_id: str
    prompt: str
    credential: Credential
    agent_api_key: str = field(repr=False)


class Dispatcher:
    """Schedules and runs agent dispatches with failure containment.

    Attributes:
        agent_factory: Builds an agent from a credential and the agent API key.
        event_emitter: Receives the dispatch lifecycle events.
    """

    def __init__(
        self,
        agent_factory: AgentFactory,
        event_emitter: Optional[EventEmitter] = None,
    ):
        self.agent_factory = agent_factory
        self.event_emitter = event_emitter or NullEventEmitter()

    def dispatch(self, task: DispatchTask, scheduler: TaskScheduler) -> None:
        """Hand a task to the scheduler without waiting for it."""
        logger.info(
            "Scheduling agent dispatch",
            extra={
                "session_id": task.session_id,
                "organization_id": task.organization_id,
            },
        )
        scheduler.schedule(self.run, task)

    async def run(self, task: DispatchTask) -> None:
        """Run a dispatch to completion, containing any failure.

        This never raises: the webhook response has already been sent, so
        there is no caller left to report an error to.
        """
        started = time.monotonic()
        await self._emit(
            EventType.DISPATCH_STARTED,
            task,
            {"prompt_length": len(task.prompt)},
        )

        try:
            agent = self.agent_factory(task.credential, task.agent_api_key)
            await agent.handle_user_prompt(task.session_id, task.prompt)
        except Exception as exc:
            duration = time.monotonic() - started
            logger.exception(
                "Agent dispatch failed",
                extra={
                    "session_id": task.session_id,
                    "organization_id": task.organization_id,
                    "duration_seconds": duration,
                },
            )
            await self._emit(
                EventType.DISPATCH_FAILED,
                task,
                {
                    "duration_seconds": duration,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            return

        await self._emit(
            EventType.DISPATCH_SUCCEEDED,
            task,
            {"duration_seconds": time.monotonic() - started},
        )

    async def _emit(self, event_type: EventType, task: DispatchTask, details: dict) -> None:
        event = DispatchEvent(
            event_type=event_type,
            session_id=task.session_id,
            organization_id=task.organization_id,
            details=details,
        )
        try:
            await self.event_emitter.emit(event)
        except Exception:
            logger.exception(
                "Failed to emit dispatch event",
                extra={"event_type": event_type.value, "session_id": task.session_id},
            )
