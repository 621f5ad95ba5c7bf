"""
pgrag LLM Client
================

Chat model clients used to answer questions from retrieved context.
Supports OpenAI and Claude (Anthropic).

Every client takes a list of {"role", "content"} messages and returns an
LLMResponse whose ``completion_text`` holds the answer.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Dict
from enum import Enum

from ..config import get_settings

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class LLMProvider(Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class ChatError(Exception):
    """Chat completion failed at the provider."""

    def __init__(self, message: str, provider: Optional[LLMProvider] = None):
        self.message = message
        self.provider = provider
        super().__init__(self.message)


@dataclass
class LLMResponse:
    """Chat completion result."""
    completion_text: str
    model: str
    provider: LLMProvider
    tokens_input: int
    tokens_output: int
    cost_usd: float

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


class ChatModel(ABC):
    """Abstract chat model."""

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Complete a conversation."""


class _PricedClient(ChatModel):
    """Shared API key, pricing and defaults handling."""

    PRICING: Dict[str, Dict[str, float]] = {}
    DEFAULT_PRICING = {"input": 3.0, "output": 15.0}

    def __init__(self, api_key: Optional[str], model: str):
        config = get_settings().llm
        self.api_key = api_key
        self.model = model
        self.max_tokens = config.max_tokens
        self.temperature = config.temperature
        self._client = None

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD (pricing is per 1M tokens)."""
        pricing = self.PRICING.get(self.model, self.DEFAULT_PRICING)
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)


class AnthropicChatModel(_PricedClient):
    """
    Client for Claude (Anthropic).

    System messages are passed through Anthropic's ``system`` parameter.
    """

    # Pricing per 1M tokens (USD)
    PRICING = {
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
        "claude-3-5-sonnet-20241022": {"input": 3.0, "output": 15.0},
        "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
    ):
        super().__init__(api_key or os.getenv("ANTHROPIC_API_KEY"), model)

        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not set - chat features disabled")

    def _get_client(self):
        """Lazy init of the Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def chat(
        self,
        messages: List[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY required")

        import anthropic

        client = self._get_client()

        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": [m for m in messages if m["role"] != "system"],
            "temperature": self.temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system

        try:
            response = client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Anthropic chat failed: {e}")
            raise ChatError(f"Anthropic chat failed: {e}", provider=LLMProvider.ANTHROPIC) from e

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return LLMResponse(
            completion_text=response.content[0].text,
            model=self.model,
            provider=LLMProvider.ANTHROPIC,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


class OpenAIChatModel(_PricedClient):
    """Client for OpenAI GPT chat completions."""

    PRICING = {
        "gpt-4o": {"input": 2.5, "output": 10.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    }
    DEFAULT_PRICING = {"input": 2.5, "output": 10.0}

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
    ):
        # Support both OPENAI_API_KEY and GPT_API_KEY
        super().__init__(api_key or os.getenv("OPENAI_API_KEY") or os.getenv("GPT_API_KEY"), model)

    def _get_client(self):
        if self._client is None:
            import openai
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def chat(
        self,
        messages: List[Message],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY required")

        import openai

        client = self._get_client()

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature if temperature is None else temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI chat failed: {e}")
            raise ChatError(f"OpenAI chat failed: {e}", provider=LLMProvider.OPENAI) from e

        input_tokens = response.usage.prompt_tokens
        output_tokens = response.usage.completion_tokens

        return LLMResponse(
            completion_text=response.choices[0].message.content,
            model=self.model,
            provider=LLMProvider.OPENAI,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )


def get_chat_model(
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> ChatModel:
    """
    Factory for a chat model.

    Priority:
    1. Explicit provider (argument, then LLM_PROVIDER)
    2. ANTHROPIC_API_KEY present -> Claude
    3. OPENAI_API_KEY or GPT_API_KEY present -> GPT
    4. Error
    """
    config = get_settings().llm
    provider = provider or config.provider
    model = model or config.model

    openai_key = os.getenv("OPENAI_API_KEY") or os.getenv("GPT_API_KEY")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY")

    if provider == "openai" or (not provider and openai_key and not anthropic_key):
        return OpenAIChatModel(model=model or "gpt-4o-mini")

    if provider == "anthropic" or anthropic_key:
        return AnthropicChatModel(model=model or "claude-sonnet-4-20250514")

    raise ValueError(
        "No LLM API key found. Set ANTHROPIC_API_KEY, OPENAI_API_KEY, or GPT_API_KEY"
    )
