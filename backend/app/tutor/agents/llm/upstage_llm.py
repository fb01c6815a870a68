"""Upstage (OpenAI compatible) chat completion client used as the completion gateway."""

from typing import Any, Optional, Sequence, cast

from fastapi import Depends
from openai import OpenAI, OpenAIError

from tutor.agents.llm.base_llm import (
    NO_RESPONSE_PLACEHOLDER,
    BaseLLM,
    EchoLLM,
    build_chat_messages,
)
from tutor.configs import Settings, get_settings
from tutor.errors import CompletionFailedError
from tutor.logger_config import get_logger

logger = get_logger(__name__)


class UpstageLLM(BaseLLM):
    """Wrapper around the OpenAI client pointed at the Upstage endpoint."""

    def __init__(
        self,
        model: str = "solar-pro2",
        api_key: Optional[str] = None,
        base_url: str = "https://api.upstage.ai/v1",
        temperature: float = 0.2,
        client: Optional[OpenAI] = None,
    ) -> None:
        """Initialize client, model and default sampling temperature.

        Args:
            model: Model identifier sent with every request.
            api_key: Upstage API key.
            base_url: OpenAI compatible endpoint.
            temperature: Default temperature, kept low for a steady tutoring tone.
            client: Preconfigured client, mostly for tests.
        """
        self.model = model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)

    def complete(
        self,
        system_text: str,
        prior_turns: Sequence[str],
        final_user_text: str,
        temperature: Optional[float] = None,
        placeholder: Optional[str] = None,
    ) -> str:
        """Call chat completions; an empty completion becomes the placeholder."""
        messages = build_chat_messages(system_text, prior_turns, final_user_text)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, messages),
                temperature=self.temperature if temperature is None else temperature,
            )
        except OpenAIError as exc:
            logger.error("Completion request to %s failed: %s", self.model, exc)
            raise CompletionFailedError(str(exc) or exc.__class__.__name__) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.warning("Empty completion from %s, using placeholder.", self.model)
            return placeholder or NO_RESPONSE_PLACEHOLDER
        return content


def get_llm(settings: Settings = Depends(get_settings)) -> BaseLLM:
    """FastAPI dependency returning the configured completion gateway."""
    if not settings.UPSTAGE_API_KEY:
        logger.warning("UPSTAGE_API_KEY is not set, replies come from EchoLLM.")
        return EchoLLM()
    return UpstageLLM(
        model=settings.UPSTAGE_MODEL,
        api_key=settings.UPSTAGE_API_KEY,
        base_url=settings.UPSTAGE_BASE_URL,
        temperature=settings.COMPLETION_TEMPERATURE,
    )
