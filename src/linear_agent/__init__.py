"""Linear agent webhook service.

This package receives Linear webhooks for an agent application and hands
agent session events to an LLM-backed agent:
- Webhook signature verification and payload parsing
- Event classification (only agent session events are acted upon)
- Per-organization OAuth credential resolution and the OAuth grant flow
- Background dispatch of the agent with failure containment
- Logging and Prometheus metrics for dispatch outcomes
"""
