"""LLM-backed agent that answers inside a Linear agent session.

The agent posts a ``thought`` activity so the user sees that the session
was picked up, asks the LLM for an answer to the prompt, and posts the
answer as a ``response`` activity. When the LLM call fails an ``error``
activity is posted and the exception is re-raised for the dispatcher to
record.
"""

import logging
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from src.linear_agent.linear.client import DEFAULT_API_URL, LinearClient

logger = logging.getLogger(__name__)


AGENT_SYSTEM_PROMPT = """You are an assistant working inside Linear, the issue tracker.
You are given a task taken from a Linear issue or comment. Answer it directly and
concisely in Markdown. If the task is ambiguous, state your assumptions."""

EMPTY_PROMPT_RESPONSE = (
    "I didn't find an issue title or comment to work from. "
    "Mention me in a comment describing what you need."
)

THINKING_MESSAGE = "Looking into this..."


class AgentCapability(Protocol):
    """What the dispatcher needs from an agent."""

    async def handle_user_prompt(self, agent_session_id: str, prompt: str) -> None:
        ...


class AgentClient:
    """Agent bound to one organization's Linear token and an OpenAI key.

    Attributes:
        linear: Linear API client authenticated as the agent application.
        model_name: OpenAI model used for answers.
    """

    def __init__(
        self,
        linear_access_token: str,
        openai_api_key: str,
        model_name: str = "gpt-4o-mini",
        linear_api_url: str = DEFAULT_API_URL,
        llm: Optional[ChatOpenAI] = None,
        linear_client: Optional[LinearClient] = None,
    ):
        self.model_name = model_name
        self._openai_api_key = openai_api_key
        self._llm = llm
        self.linear = linear_client or LinearClient(
            access_token=linear_access_token,
            api_url=linear_api_url,
        )

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.model_name,
                api_key=self._openai_api_key,
                temperature=0.2,
                timeout=60.0,
            )
        return self._llm

    async def handle_user_prompt(self, agent_session_id: str, prompt: str) -> None:
        """Answer a prompt in the given agent session.

        Raises:
            LinearAPIError: If posting an activity fails.
            Exception: Whatever the LLM client raised, after an error
                activity has been posted.
        """
        try:
            await self.linear.create_agent_activity(
                agent_session_id,
                {"type": "thought", "body": THINKING_MESSAGE},
            )

            if not prompt:
                logger.info(
                    "Empty prompt for agent session",
                    extra={"agent_session_id": agent_session_id},
                )
                await self.linear.create_agent_activity(
                    agent_session_id,
                    {"type": "response", "body": EMPTY_PROMPT_RESPONSE},
                )
                return

            try:
                answer = await self._generate(prompt)
            except Exception as e:
                await self.linear.create_agent_activity(
                    agent_session_id,
                    {"type": "error", "body": f"I ran into a problem: {e}"},
                )
                raise

            await self.linear.create_agent_activity(
                agent_session_id,
                {"type": "response", "body": answer},
            )
            logger.info(
                "Agent responded",
                extra={"agent_session_id": agent_session_id, "response_length": len(answer)},
            )
        finally:
            await self.linear.close()

    async def _generate(self, prompt: str) -> str:
        messages = [
            SystemMessage(content=AGENT_SYSTEM_PROMPT),
            HumanMessage(content=prompt),
        ]
        response = await self.llm.ainvoke(messages)
        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return str(content).strip()
