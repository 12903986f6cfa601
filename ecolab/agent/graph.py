"""
LangGraph agent: retrieve -> first pass -> (call tool -> second pass) -> END.

One turn, stateless. The first model pass either answers directly or requests
the air-quality tool; at most one tool call is serviced, and its result is fed
back for a second, final pass.
"""

import json
import logging
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from ecolab.agent.llm import ChatLLM, LLMReply, ToolCall
from ecolab.agent.prompts import SYSTEM_PROMPT
from ecolab.agent.tools import AGENT_TOOLS, KNOWN_TOOLS, arguments_or_default, execute_tool
from ecolab.core.config import RETRIEVAL_TOP_K, TOOL_RESULT_MAX_CHARS
from ecolab.schemas.chat import ChatResponse, Passage, ToolInvocation
from ecolab.services.air_quality_service import AirQualityService
from ecolab.services.retrieval_service import PassageSource, build_context, retrieve_passages

logger = logging.getLogger(__name__)


class AgentState(TypedDict, total=False):
    question: str
    passages: list[Passage]
    context: str
    messages: list[dict[str, Any]]
    first_reply: LLMReply
    tool_call: ToolCall | None
    tool: ToolInvocation | None
    answer: str


def select_tool_call(reply: LLMReply) -> ToolCall | None:
    """First tool call the agent knows how to run; later ones are ignored."""
    for call in reply.tool_calls:
        if call.name in KNOWN_TOOLS:
            return call
    return None


class AirQualityAgent:
    """Two-pass tool-augmented answerer over the vector store and OpenAQ."""

    def __init__(
        self,
        store: PassageSource,
        collection: str,
        llm: ChatLLM,
        air_quality: AirQualityService,
        top_k: int = RETRIEVAL_TOP_K,
        tool_result_max_chars: int = TOOL_RESULT_MAX_CHARS,
    ) -> None:
        self._store = store
        self._collection = collection
        self._llm = llm
        self._air_quality = air_quality
        self.top_k = top_k
        self.tool_result_max_chars = tool_result_max_chars
        self._graph = self.build_graph()

    # --- nodes ---

    def _retrieve(self, state: AgentState) -> dict:
        passages = retrieve_passages(self._store, self._collection, state["question"], self.top_k)
        return {"passages": passages, "context": build_context(passages)}

    def _first_pass(self, state: AgentState) -> dict:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": state["question"]},
            {"role": "system", "content": f"Context:\n{state['context']}"},
        ]
        reply = self._llm.chat(messages, AGENT_TOOLS)
        call = select_tool_call(reply)
        if reply.tool_calls and call is None:
            logger.warning(
                "[graph:first_pass] unknown tool(s) requested %s; answering with first-pass text",
                [tc.name for tc in reply.tool_calls],
            )
        return {
            "messages": messages,
            "first_reply": reply,
            "tool_call": call,
            "tool": None,
            "answer": reply.content,
        }

    def _call_tool(self, state: AgentState) -> dict:
        call = state["tool_call"]
        params = arguments_or_default(call.arguments)
        result = execute_tool(call.name, params, self._air_quality)
        payload = json.dumps(result.model_dump(by_alias=True, mode="json"), ensure_ascii=False)
        messages = [
            *state["messages"],
            state["first_reply"].assistant_message(only=call),
            {
                "role": "tool",
                "tool_call_id": call.id,
                "content": payload[: self.tool_result_max_chars],
            },
        ]
        logger.info("[graph:call_tool] OUT tool=%s count=%d payload_len=%d", call.name, result.meta.count, len(payload))
        return {
            "messages": messages,
            "tool": ToolInvocation(name=call.name, args=params.model_dump(exclude_none=True)),
        }

    def _second_pass(self, state: AgentState) -> dict:
        reply = self._llm.chat(state["messages"])
        return {"answer": reply.content}

    def _route_after_first_pass(self, state: AgentState) -> Literal["call_tool", "__end__"]:
        next_node = "call_tool" if state.get("tool_call") is not None else END
        logger.info("[graph:route_after_first_pass] -> %s", next_node)
        return next_node

    def build_graph(self):
        """
        Build and compile the agent graph.
        retrieve -> first_pass -> (call_tool -> second_pass if a known tool was requested) -> END.
        """
        graph = StateGraph(AgentState)

        graph.add_node("retrieve", self._retrieve)
        graph.add_node("first_pass", self._first_pass)
        graph.add_node("call_tool", self._call_tool)
        graph.add_node("second_pass", self._second_pass)

        graph.set_entry_point("retrieve")
        graph.add_edge("retrieve", "first_pass")
        graph.add_conditional_edges("first_pass", self._route_after_first_pass)
        graph.add_edge("call_tool", "second_pass")
        graph.add_edge("second_pass", END)

        return graph.compile()

    def answer(self, question: str) -> ChatResponse:
        """Run one turn. Returns answer, passages, and the tool invocation (or None)."""
        if not question or not str(question).strip():
            raise ValueError("question is required")
        logger.info("[agent:answer] START question=%r", question)
        final = self._graph.invoke({"question": question})
        response = ChatResponse(
            answer=final.get("answer") or "",
            passages=final.get("passages") or [],
            tool=final.get("tool"),
        )
        logger.info(
            "[agent:answer] END tool=%s passages=%d answer_len=%d",
            response.tool.name if response.tool else None, len(response.passages), len(response.answer),
        )
        return response
