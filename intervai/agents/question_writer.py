"""
QuestionWriter - Generates interview question/answer pairs with Claude.

Thin adapter around the chat model: builds the prompt, returns the raw text
and classifies upstream failures. Parsing lives in agents.parsing so it can
be exercised without a model.
"""

from typing import List, Optional

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from intervai.config import AppConfig
from intervai.errors import (
    UpstreamAuthError,
    UpstreamRateLimitError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)
from intervai.utils.logging import worker_logger as logger

SYSTEM_PROMPT = "Expert technical interviewer. Generate valid JSON arrays only."


def build_prompt(role: str, experience: str, topics: List[str], count: int = 5) -> str:
    """User prompt asking for exactly `count` pairs as a strict JSON array."""
    noun = "question" if count == 1 else "questions"
    return (
        f"Generate exactly {count} interview {noun} for:\n\n"
        f"Role: {role}\n"
        f"Experience: {experience}\n"
        f"Topics: {', '.join(topics)}\n\n"
        "Return ONLY a valid JSON array. No markdown, no explanations.\n"
        'Format: [{"question": "...", "answer": "..."}]'
    )


def classify_upstream_error(error: Exception) -> Optional[UpstreamServiceError]:
    """Map an Anthropic SDK exception to the upstream error taxonomy."""
    if isinstance(error, anthropic.AuthenticationError):
        return UpstreamAuthError("AI service authentication failed")
    if isinstance(error, anthropic.RateLimitError):
        return UpstreamRateLimitError("AI service rate limit exceeded")
    if isinstance(error, (anthropic.APIConnectionError, anthropic.APITimeoutError)):
        return UpstreamUnavailableError("AI service is unreachable")
    if isinstance(error, anthropic.InternalServerError):
        return UpstreamUnavailableError("AI service is temporarily unavailable")
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code >= 500:
            return UpstreamUnavailableError("AI service is temporarily unavailable")
        return UpstreamServiceError(f"AI service rejected the request ({error.status_code})")
    return None


class QuestionWriter:
    """
    Writes interview questions for a role, experience level and topic list.
    """

    def __init__(self, app_config: AppConfig, llm=None):
        """
        Args:
            app_config: Model name, temperature, token and timeout limits
            llm: Pre-built chat model (defaults to ChatAnthropic)
        """
        self.model_name = app_config.MODEL_NAME
        self.count = app_config.QUESTIONS_PER_GENERATION
        self.llm = llm or ChatAnthropic(
            model=self.model_name,
            temperature=app_config.TEMPERATURE,
            max_tokens=app_config.MAX_TOKENS,
            anthropic_api_key=app_config.ANTHROPIC_API_KEY,
            timeout=app_config.LLM_TIMEOUT_SECONDS,
            max_retries=0,  # the job queue owns retries
        )

    async def write(
        self,
        role: str,
        experience: str,
        topics: List[str],
        count: Optional[int] = None
    ) -> str:
        """
        Ask the model for question/answer pairs.

        Args:
            count: Pairs to ask for (defaults to QUESTIONS_PER_GENERATION)

        Returns:
            Raw response text

        Raises:
            UpstreamServiceError: The model call failed
        """
        prompt = build_prompt(role, experience, topics, count or self.count)

        try:
            response = await self.llm.ainvoke([
                SystemMessage(content=SYSTEM_PROMPT),
                HumanMessage(content=prompt),
            ])
        except anthropic.APIError as e:
            mapped = classify_upstream_error(e)
            logger.error(
                "Question generation call failed",
                model=self.model_name,
                error=str(e),
                error_type=type(e).__name__
            )
            raise (mapped or UpstreamServiceError(str(e))) from e

        content = response.content
        if isinstance(content, list):
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        return content or ""
