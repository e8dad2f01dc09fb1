"""Schemas for AI token usage tracking."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

TokenFeature = Literal[
    "AI Assistant",
    "Address Parsing",
    "Application Parsing",
    "Final Decision",
]


class TokenContext(BaseModel):
    """Caller identity attached to every AI call.

    Passed explicitly through the pipeline instead of being read from
    ambient session state.
    """

    user_id: str
    session_id: str
    fund_code: Optional[str] = None


class TokenEvent(BaseModel):
    session_id: str
    user_id: str
    fund_code: Optional[str] = None
    feature: TokenFeature
    model: str
    input_tokens: int = Field(0, ge=0)
    cached_input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    cost: float = 0.0
    environment: str
    account: str
    timestamp: datetime

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.cached_input_tokens + self.output_tokens

    class Config:
        from_attributes = True
