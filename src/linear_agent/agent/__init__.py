"""LLM-backed agent that replies in Linear agent sessions."""

from src.linear_agent.agent.client import AgentCapability, AgentClient

__all__ = [
    "AgentCapability",
    "AgentClient",
]
