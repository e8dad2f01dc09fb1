"""AI token usage and cost tracking.

Every AI call records one TokenEvent.  The caller's identity travels in an
explicit TokenContext; nothing here reads ambient session state.
Recording is best-effort: a failed write is logged and never surfaces to
the pipeline that made the AI call.
"""

import logging
import math
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grantrelief.models.db.token_event import TokenEventRow
from grantrelief.models.token_usage import TokenContext, TokenEvent, TokenFeature

logger = logging.getLogger(__name__)

# Price per 1000 tokens
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4.1": {"input": 0.002, "output": 0.008},
    "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
}


def estimate_tokens(text: Optional[str]) -> int:
    """Approximate token count (roughly 4 characters per token)."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Dollar cost of one call; unknown models are priced at zero."""
    pricing = MODEL_PRICING.get(model, {"input": 0.0, "output": 0.0})
    return (input_tokens / 1000) * pricing["input"] + (
        output_tokens / 1000
    ) * pricing["output"]


def new_session_id(prefix: str) -> str:
    """Short random id for grouping the calls of one AI interaction."""
    return f"{prefix}-{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class TokenEventStore(Protocol):
    async def add(self, event: TokenEvent) -> None: ...

    async def list_events(self, user_id: Optional[str] = None) -> List[TokenEvent]: ...


class InMemoryTokenEventStore:
    """Process-local store used when no database is configured."""

    def __init__(self) -> None:
        self._events: List[TokenEvent] = []

    async def add(self, event: TokenEvent) -> None:
        self._events.append(event)

    async def list_events(self, user_id: Optional[str] = None) -> List[TokenEvent]:
        return [e for e in self._events if user_id is None or e.user_id == user_id]


class SqlTokenEventStore:
    """Token events persisted to the ``token_events`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, event: TokenEvent) -> None:
        async with self._session_factory() as session:
            session.add(TokenEventRow(**event.model_dump()))
            await session.commit()

    async def list_events(self, user_id: Optional[str] = None) -> List[TokenEvent]:
        query = select(TokenEventRow).order_by(TokenEventRow.timestamp)
        if user_id is not None:
            query = query.where(TokenEventRow.user_id == user_id)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [TokenEvent.model_validate(row) for row in result.scalars().all()]


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class TokenUsageTracker:
    """Builds TokenEvents from AI calls and hands them to a store."""

    def __init__(
        self,
        store: TokenEventStore,
        environment: Optional[str] = None,
        account: Optional[str] = None,
    ) -> None:
        self.store = store
        self.environment = environment or os.getenv("ENVIRONMENT", "Production")
        self.account = account or os.getenv("TOKEN_ACCOUNT", "E4E-Relief-Inc")

    async def log_event(
        self,
        context: TokenContext,
        feature: TokenFeature,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cached_input_tokens: int = 0,
    ) -> Optional[TokenEvent]:
        """Record one AI call.

        Returns:
            The stored event, or None if it could not be recorded.
        """
        try:
            event = TokenEvent(
                session_id=context.session_id,
                user_id=context.user_id,
                fund_code=context.fund_code,
                feature=feature,
                model=model,
                input_tokens=input_tokens,
                cached_input_tokens=cached_input_tokens,
                output_tokens=output_tokens,
                cost=calculate_cost(model, input_tokens, output_tokens),
                environment=self.environment,
                account=self.account,
                timestamp=datetime.now(timezone.utc),
            )
            await self.store.add(event)
        except Exception as e:
            logger.error("Failed to log token event for %s: %s", feature, e)
            return None

        logger.debug(
            "Token usage %s/%s: %d tokens, $%.6f",
            feature,
            model,
            event.total_tokens,
            event.cost,
        )
        return event
