"""Background dispatch of agent session events."""

from src.linear_agent.dispatch.dispatcher import (
    AgentFactory,
    BackgroundTaskScheduler,
    DispatchTask,
    Dispatcher,
    TaskScheduler,
)

__all__ = [
    "AgentFactory",
    "BackgroundTaskScheduler",
    "DispatchTask",
    "Dispatcher",
    "TaskScheduler",
]
