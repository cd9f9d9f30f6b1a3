"""Linear GraphQL API client."""

from src.linear_agent.linear.client import LinearAPIError, LinearClient

__all__ = [
    "LinearAPIError",
    "LinearClient",
]
