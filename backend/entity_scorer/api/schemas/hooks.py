"""Pydantic request/response schemas for hook endpoints."""

from pydantic import BaseModel

from entity_scorer.models.entity import TurnResult


class HookRequest(BaseModel):
    text: str = ""


class HookResponse(BaseModel):
    text: str
    message: str | None = None  # command output for the operator
    result: TurnResult | None = None
