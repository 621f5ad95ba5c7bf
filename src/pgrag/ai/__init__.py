"""
pgrag AI Module
===============

Chat model clients (OpenAI, Anthropic) behind a common ChatModel interface.
"""

from .llm_client import (
    ChatModel,
    ChatError,
    LLMResponse,
    LLMProvider,
    AnthropicChatModel,
    OpenAIChatModel,
    get_chat_model,
)

__all__ = [
    "ChatModel",
    "ChatError",
    "LLMResponse",
    "LLMProvider",
    "AnthropicChatModel",
    "OpenAIChatModel",
    "get_chat_model",
]
