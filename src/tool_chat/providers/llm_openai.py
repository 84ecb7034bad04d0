from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import openai
from openai import AsyncOpenAI

from tool_chat.core.interfaces import ChatModel
from tool_chat.core.messages import ResponseFragment, ToolCallDelta


class OpenAIProviderError(RuntimeError):
    pass


@dataclass(frozen=True)
class OpenAILLMConfig:
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    base_url: Optional[str] = None

    @staticmethod
    def from_env() -> "OpenAILLMConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise OpenAIProviderError("Missing OPENAI_API_KEY in environment.")

        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        temperature = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
        base_url = os.getenv("OPENAI_BASE_URL", "").strip() or None
        return OpenAILLMConfig(
            api_key=api_key, model=model, temperature=temperature, base_url=base_url
        )


def fragment_from_chunk(chunk: Any) -> Optional[ResponseFragment]:
    """Map a ChatCompletionChunk to a ResponseFragment (None for choice-less chunks)."""
    if not chunk.choices:
        return None
    choice = chunk.choices[0]
    delta = choice.delta
    calls = []
    for tc in (delta.tool_calls if delta is not None else None) or []:
        fn = tc.function
        calls.append(
            ToolCallDelta(
                index=tc.index,
                id=tc.id or "",
                name=(fn.name or "") if fn is not None else "",
                arguments=(fn.arguments or "") if fn is not None else "",
            )
        )
    return ResponseFragment(
        text=(delta.content or "") if delta is not None else "",
        tool_calls=tuple(calls),
        finish_reason=choice.finish_reason,
    )


class OpenAIChatModel(ChatModel):
    """
    Streaming OpenAI chat completions implementing ChatModel.
    Works with any OpenAI-compatible endpoint through base_url.
    """

    def __init__(self, config: OpenAILLMConfig, timeout_s: float = 60.0) -> None:
        self._cfg = config
        self._client = AsyncOpenAI(
            api_key=config.api_key, base_url=config.base_url, timeout=timeout_s
        )

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        allow_tools: bool = True,
        model: Optional[str] = None,
    ) -> AsyncIterator[ResponseFragment]:
        params: dict[str, Any] = {
            "model": model or self._cfg.model,
            "messages": messages,
            "temperature": self._cfg.temperature,
            "stream": True,
        }
        if allow_tools and tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise OpenAIProviderError(f"OpenAI request failed: {e}") from e

        try:
            async for chunk in response:
                fragment = fragment_from_chunk(chunk)
                if fragment is not None:
                    yield fragment
        except openai.OpenAIError as e:
            raise OpenAIProviderError(f"OpenAI stream failed: {e}") from e
        finally:
            await response.close()

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("OpenAIChatModel.generate received empty prompt.")

        messages = []
        if context:
            messages.append({"role": "system", "content": context})
        messages.append({"role": "user", "content": prompt})

        params: dict[str, Any] = {
            "model": model or self._cfg.model,
            "messages": messages,
            "temperature": self._cfg.temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        try:
            resp = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise OpenAIProviderError(f"OpenAI request failed: {e}") from e

        text = (resp.choices[0].message.content or "").strip()
        if not text:
            raise OpenAIProviderError("OpenAI returned empty response text.")
        return text

    async def list_model_ids(self) -> list[str]:
        try:
            page = await self._client.models.list()
        except openai.OpenAIError as e:
            raise OpenAIProviderError(f"Failed to list OpenAI models: {e}") from e
        return [m.id for m in page.data]
