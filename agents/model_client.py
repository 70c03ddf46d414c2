"""
Shared AutoGen plumbing for the single-shot agents.

Every call builds a fresh ``AssistantAgent`` around a shared model client, so
concurrent calls never see each other's conversation history.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from autogen_agentchat.agents import AssistantAgent
from autogen_agentchat.messages import BaseChatMessage
from autogen_core.models import ChatCompletionClient, ModelInfo
from autogen_ext.models.openai import OpenAIChatCompletionClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"


def build_openai_client(
    *,
    api_key: str,
    model_name: str = DEFAULT_MODEL_NAME,
    base_url: str = DEFAULT_BASE_URL,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    json_output: bool = False,
) -> ChatCompletionClient:
    model_info: ModelInfo = {
        "vision": False,
        "function_calling": True,
        "json_output": json_output,
        "structured_output": False,
        "family": "openai",
    }
    client_kwargs: Dict[str, Any] = {
        "model": model_name,
        "api_key": api_key,
        "base_url": base_url,
        "include_name_in_message": False,
        "model_info": model_info,
    }
    if temperature is not None:
        client_kwargs["temperature"] = temperature
    if max_tokens is not None:
        client_kwargs["max_tokens"] = max_tokens
    if json_output:
        client_kwargs["response_format"] = {"type": "json_object"}
    logger.debug("Building OpenAI client for model '%s' (json_output=%s)", model_name, json_output)
    return OpenAIChatCompletionClient(**client_kwargs)


def last_chat_message(messages: Iterable[Any], preferred_source: Optional[str] = None) -> BaseChatMessage:
    candidate: Optional[BaseChatMessage] = None
    for message in reversed(list(messages)):
        if not isinstance(message, BaseChatMessage):
            continue
        if preferred_source and getattr(message, "source", None) == preferred_source:
            return message
        if candidate is None:
            candidate = message
    if candidate:
        return candidate
    raise RuntimeError("Assistant did not produce a chat response.")


def extract_text(messages: Iterable[Any], preferred_source: Optional[str] = None) -> str:
    final_message = last_chat_message(messages, preferred_source=preferred_source)
    return final_message.to_text().strip()


async def run_single_turn(
    *,
    model_client: ChatCompletionClient,
    name: str,
    system_message: str,
    task: str,
    description: str = "",
) -> str:
    """Run one task through a throwaway assistant and return its final text."""

    agent = AssistantAgent(
        name=name,
        model_client=model_client,
        system_message=system_message,
        description=description or name,
    )
    result = await agent.run(task=task)
    return extract_text(result.messages, preferred_source=name)
