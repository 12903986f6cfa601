"""
Agent LLM: OpenAI chat completions with tool calling.

The client is constructed once and passed in; it holds no per-request state.
Tool-call arguments are returned as the raw JSON string the model produced;
parsing and validation belong to the agent.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from openai import OpenAI

from ecolab.core.config import LLM_TEMPERATURE, OPENAI_LLM_MODEL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str


@dataclass
class LLMReply:
    """One assistant turn: text content (may be empty) and any requested tool calls."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)

    def assistant_message(self, only: ToolCall | None = None) -> dict[str, Any]:
        """The assistant message to replay in a follow-up request, optionally limited to one tool call."""
        calls = [only] if only is not None else self.tool_calls
        msg: dict[str, Any] = {"role": "assistant", "content": self.content or None}
        if calls:
            msg["tool_calls"] = [
                {"id": tc.id, "type": "function", "function": {"name": tc.name, "arguments": tc.arguments}}
                for tc in calls
            ]
        return msg


class ChatLLM:
    """OpenAI chat completions (tool_choice=auto when tools are given)."""

    def __init__(
        self,
        client: OpenAI,
        model: str = OPENAI_LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature

    def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMReply:
        logger.info("[llm:chat] IN  messages=%d tools=%d", len(messages), len(tools or []))
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        response = self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=messages,
            **kwargs,
        )
        msg = response.choices[0].message if response.choices else None
        if not msg:
            return LLMReply(content="")
        content = getattr(msg, "content", None) or ""
        tool_calls = []
        for tc in getattr(msg, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            if not fn:
                continue
            tool_calls.append(
                ToolCall(
                    id=getattr(tc, "id", None) or "",
                    name=getattr(fn, "name", None) or "",
                    arguments=getattr(fn, "arguments", None) or "{}",
                )
            )
        if tool_calls:
            logger.info("[llm:chat] OUT tool_calls=%s", [t.name for t in tool_calls])
        else:
            logger.info("[llm:chat] OUT content_len=%d", len(content))
        return LLMReply(content=content, tool_calls=tool_calls)
