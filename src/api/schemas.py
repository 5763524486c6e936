"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StatusCallbackResponse(BaseModel):
    call_sid: str
    removed: bool = Field(description="False when this process never saw the call.")
