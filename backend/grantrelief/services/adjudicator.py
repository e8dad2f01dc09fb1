"""
AI Final-Review Adjudicator

Sends the rules engine's preliminary decision, the applicant's event data
and the current balances to an Azure OpenAI model acting as the senior
grant approver.  The model returns a final Approved/Denied decision, one
applicant-facing reason and an award amount.

Whatever the model says, the award is held to the same bounds the rules
engine uses (requested amount, 12-month remaining, lifetime remaining),
and the audit trail (policy hits, normalized fields) of the preliminary
decision is carried over untouched.

Failures (missing configuration, API errors, timeouts, malformed JSON,
schema violations) never escape: ``review`` returns an
``AdjudicationFallback`` holding the preliminary decision plus one
disclosure reason.  The call is not retried here; the applicant may
resubmit.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from openai import AsyncAzureOpenAI
from pydantic import ValidationError

from grantrelief.models.eligibility import (
    AdjudicatorVerdict,
    EligibilityDecision,
    EventSubmission,
    round_to_cents,
)
from grantrelief.models.token_usage import TokenContext
from grantrelief.openai_provider import (
    get_async_client,
    get_deployment_for_feature,
    get_feature_model_config,
)
from grantrelief.services.token_tracker import (
    TokenUsageTracker,
    estimate_tokens,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60  # seconds

AI_REVIEW_FALLBACK_REASON = (
    "AI final review failed; this decision is based on the automated rules "
    "engine only."
)


class AdjudicatorResponseError(Exception):
    """The model replied, but not with a usable verdict."""


# ============================================================================
# Result Types
# ============================================================================


@dataclass(frozen=True)
class AdjudicationOk:
    """The model produced a verdict; ``decision`` has it applied."""

    decision: EligibilityDecision
    verdict: AdjudicatorVerdict


@dataclass(frozen=True)
class AdjudicationFallback:
    """The model call failed; ``decision`` is the rules-engine result."""

    decision: EligibilityDecision
    error: str


AdjudicationOutcome = Union[AdjudicationOk, AdjudicationFallback]


# ============================================================================
# Prompt and Schema
# ============================================================================

FINAL_DECISION_SCHEMA = {
    "name": "final_decision",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "finalDecision": {
                "type": "string",
                "enum": ["Approved", "Denied"],
                "description": "Your final decision.",
            },
            "finalReason": {
                "type": "string",
                "description": (
                    "A single, concise, and empathetic reason for your final "
                    "decision. This will be shown to the applicant."
                ),
            },
            "finalAward": {
                "type": "number",
                "description": (
                    "The award amount if the decision is 'Approved', otherwise 0. "
                    "It is the minimum of the requested amount, the 12-month "
                    "remaining balance, and the lifetime remaining balance."
                ),
            },
        },
        "required": ["finalDecision", "finalReason", "finalAward"],
        "additionalProperties": False,
    },
}

FINAL_REVIEW_PROMPT = """You are a senior grant approver. Your task is to perform a final review of a relief application.
An automated, deterministic rules engine has already processed the application and provided a preliminary decision. You have the final say.

Instructions:
1. Review all provided information holistically.
2. Make a final decision: 'Approved' or 'Denied'. Your decision is final.
3. If you approve, the award is the MINIMUM of the requested amount, the 12-Month Remaining balance and the Lifetime Remaining balance. If you deny, the award is 0.
4. Write a single, concise, and empathetic reason for your decision. It is shown directly to the applicant.
   - Approvals: start with a positive confirmation, name the event and include the award amount.
     Example: "Congratulations, your application for relief from the Flood has been approved for an award of $1500.00."
   - Denials: be clear and direct, but empathetic, and state the primary reason from the preliminary findings.
     Example: "We're sorry, but your application could not be approved because the requested amount exceeds your available lifetime grant limit."
5. Respond in JSON that follows the provided schema.

---
APPLICANT'S SUBMITTED DATA:
{event_data}

CURRENT GRANT BALANCES:
- 12-Month Remaining: ${twelve_month_remaining:.2f}
- Lifetime Remaining: ${lifetime_remaining:.2f}

---
PRELIMINARY AUTOMATED DECISION:
{preliminary_decision}
---
"""


def build_final_review_prompt(
    event_data: EventSubmission,
    current_twelve_month_remaining: float,
    current_lifetime_remaining: float,
    preliminary: EligibilityDecision,
) -> str:
    return FINAL_REVIEW_PROMPT.format(
        event_data=json.dumps(event_data.model_dump(), indent=2),
        twelve_month_remaining=current_twelve_month_remaining,
        lifetime_remaining=current_lifetime_remaining,
        preliminary_decision=json.dumps(preliminary.model_dump(), indent=2),
    )


# ============================================================================
# Verdict Application (pure)
# ============================================================================


def apply_verdict(
    preliminary: EligibilityDecision,
    verdict: AdjudicatorVerdict,
    requested_amount: float,
    current_twelve_month_remaining: float,
    current_lifetime_remaining: float,
) -> EligibilityDecision:
    """
    Merge a model verdict into the preliminary decision.

    The award is clamped to [0, min(requested, 12-month, lifetime)] and is
    0 for a denial.  Awards and balances are rounded to cents.  Balances
    are reduced only for an approval.  Policy hits and the normalized
    snapshot are kept from the rules pass.

    Raises:
        AdjudicatorResponseError: If an approval carries a non-finite award.
    """
    award = 0.0
    remaining_12mo = current_twelve_month_remaining
    remaining_lifetime = current_lifetime_remaining

    if verdict.final_decision == "Approved":
        # min/max silently pass NaN through
        if not math.isfinite(verdict.final_award):
            raise AdjudicatorResponseError(
                f"Non-finite award in final review response: {verdict.final_award!r}"
            )
        ceiling = max(
            0.0,
            min(requested_amount, current_twelve_month_remaining, current_lifetime_remaining),
        )
        award = round_to_cents(min(max(verdict.final_award, 0.0), ceiling))
        if award != verdict.final_award:
            logger.warning(
                "Adjudicator award %.2f clamped to %.2f", verdict.final_award, award
            )
        remaining_12mo = round_to_cents(remaining_12mo - award)
        remaining_lifetime = round_to_cents(remaining_lifetime - award)

    if verdict.final_decision != preliminary.decision:
        logger.info(
            "Adjudicator overrode rules decision %s -> %s",
            preliminary.decision,
            verdict.final_decision,
        )

    return preliminary.model_copy(
        update={
            "decision": verdict.final_decision,
            "reasons": [verdict.final_reason],
            "recommended_award": award,
            "remaining_12mo": remaining_12mo,
            "remaining_lifetime": remaining_lifetime,
        },
        deep=True,
    )


def fallback_decision(preliminary: EligibilityDecision) -> EligibilityDecision:
    """The preliminary decision with the AI-failure disclosure appended."""
    return preliminary.model_copy(
        update={"reasons": [*preliminary.reasons, AI_REVIEW_FALLBACK_REASON]},
        deep=True,
    )


# ============================================================================
# Adjudicator
# ============================================================================


def _usage_counts(response: Any, prompt: str, content: str) -> Tuple[int, int]:
    """Token counts from the API usage block, estimated when absent."""
    usage = getattr(response, "usage", None)
    prompt_tokens = getattr(usage, "prompt_tokens", None)
    completion_tokens = getattr(usage, "completion_tokens", None)
    if isinstance(prompt_tokens, int) and isinstance(completion_tokens, int):
        return prompt_tokens, completion_tokens
    return estimate_tokens(prompt), estimate_tokens(content)


class FinalReviewAdjudicator:
    """AI final review of rules-engine decisions."""

    def __init__(
        self,
        client: Optional[AsyncAzureOpenAI] = None,
        model: Optional[str] = None,
        tracker: Optional[TokenUsageTracker] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._client = client
        self._model = model
        self.tracker = tracker
        self.timeout = timeout
        self.model_config = get_feature_model_config("AI_DECISIONING")

    async def request_verdict(
        self,
        prompt: str,
        context: Optional[TokenContext] = None,
    ) -> AdjudicatorVerdict:
        """Call the model once and validate its reply.

        Raises:
            AdjudicatorResponseError: If the reply is empty or off-schema.
            Exception: Configuration and OpenAI API errors propagate.
        """
        client = self._client or get_async_client()
        model = self._model or get_deployment_for_feature("AI_DECISIONING")

        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_schema", "json_schema": FINAL_DECISION_SCHEMA},
            max_tokens=self.model_config.max_tokens,
            temperature=self.model_config.temperature,
            timeout=self.timeout,
        )

        content = (response.choices[0].message.content or "").strip()

        if self.tracker is not None and context is not None:
            input_tokens, output_tokens = _usage_counts(response, prompt, content)
            await self.tracker.log_event(
                context,
                feature="Final Decision",
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        if not content:
            raise AdjudicatorResponseError("Empty response from final review model")
        try:
            return AdjudicatorVerdict.model_validate_json(content)
        except ValidationError as e:
            raise AdjudicatorResponseError(f"Malformed final review response: {e}") from e

    async def review(
        self,
        event_data: EventSubmission,
        current_twelve_month_remaining: float,
        current_lifetime_remaining: float,
        preliminary: EligibilityDecision,
        context: Optional[TokenContext] = None,
    ) -> AdjudicationOutcome:
        """
        Adjudicate a preliminary decision.  Never raises.

        Args:
            event_data: The applicant's raw event submission
            current_twelve_month_remaining: Pre-award 12-month balance
            current_lifetime_remaining: Pre-award lifetime balance
            preliminary: The rules engine's decision
            context: Caller identity for token usage tracking

        Returns:
            AdjudicationOk with the merged decision, or AdjudicationFallback
            with the preliminary decision plus a disclosure reason
        """
        prompt = build_final_review_prompt(
            event_data,
            current_twelve_month_remaining,
            current_lifetime_remaining,
            preliminary,
        )
        try:
            verdict = await self.request_verdict(prompt, context)
            decision = apply_verdict(
                preliminary,
                verdict,
                float(event_data.requested_amount or 0),
                current_twelve_month_remaining,
                current_lifetime_remaining,
            )
        except Exception as e:
            logger.warning("AI final review failed, using rules decision: %s", e)
            return AdjudicationFallback(
                decision=fallback_decision(preliminary), error=str(e)
            )

        return AdjudicationOk(decision=decision, verdict=verdict)
