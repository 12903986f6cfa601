"""Schemas for the chat endpoint."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class Passage(BaseModel):
    """A retrieved unit of knowledge; score is the vector distance (lower is nearer)."""

    id: str | None = None
    text: str
    score: float | None = None
    metadata: dict[str, Any] | None = None


class ToolInvocation(BaseModel):
    """Which tool the model requested and the validated arguments it ran with."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ChatRequest(BaseModel):
    """Request body for POST /chat. Stateless: no session or history."""

    message: str = Field(..., min_length=1, description="User question for the agent.")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    answer: str = Field(..., description="Final answer from the agent.")
    passages: list[Passage] = Field(default_factory=list, description="Retrieved passages, nearest first.")
    tool: ToolInvocation | None = Field(None, description="Tool invoked for this turn, if any.")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "answer": "PM2.5 in Paris is currently 12 µg/m³, above the WHO guideline of 5 µg/m³ (Source 1).",
                    "passages": [{"id": "pm25.md#0", "text": "PM2.5 guideline is 5 µg/m³", "score": 0.41}],
                    "tool": {"name": "get_air_quality_latest", "args": {"latitude": 48.85, "longitude": 2.35, "parameter": "pm25"}},
                }
            ]
        }
    }
