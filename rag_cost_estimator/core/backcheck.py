"""
Self-verification of cost calculations.

Re-derives the composite aggregates of a calculation (total daily messages
and daily cost) straight from the usage configuration and compares them
with the values the calculator reported. Disagreement is reported data,
never an exception.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from .pricing import ModelPricing

if TYPE_CHECKING:
    from .calculation import CalculationResult, UsageConfig

logger = logging.getLogger(__name__)

# Maximum absolute difference for two values to count as equal
TOLERANCE = 0.0001


@dataclass(frozen=True)
class BackcheckValues:
    """One side (expected or actual) of the compared quantities."""
    input_tokens: float = 0
    output_tokens: float = 0
    total_messages: float = 0
    daily_cost: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalMessages": self.total_messages,
            "dailyCost": self.daily_cost,
        }


@dataclass(frozen=True)
class BackcheckDetails:
    """Per-quantity match flags with the values that were compared."""
    input_tokens_match: bool
    output_tokens_match: bool
    total_messages_match: bool
    daily_cost_match: bool
    expected_values: BackcheckValues
    actual_values: BackcheckValues


@dataclass(frozen=True)
class BackcheckResult:
    """Verification report attached to a calculation result."""
    is_valid: bool
    details: BackcheckDetails

    @classmethod
    def passed_empty(cls) -> "BackcheckResult":
        """Report for zero usage: nothing to compare, trivially valid."""
        return cls._uniform(True)

    @classmethod
    def failed_empty(cls) -> "BackcheckResult":
        """Report for a calculation that could not be completed."""
        return cls._uniform(False)

    @classmethod
    def _uniform(cls, flag: bool) -> "BackcheckResult":
        return cls(
            is_valid=flag,
            details=BackcheckDetails(
                input_tokens_match=flag,
                output_tokens_match=flag,
                total_messages_match=flag,
                daily_cost_match=flag,
                expected_values=BackcheckValues(),
                actual_values=BackcheckValues()
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        details = self.details
        return {
            "isValid": self.is_valid,
            "details": {
                "inputTokensMatch": details.input_tokens_match,
                "outputTokensMatch": details.output_tokens_match,
                "totalMessagesMatch": details.total_messages_match,
                "dailyCostMatch": details.daily_cost_match,
                "expectedValues": details.expected_values.to_dict(),
                "actualValues": details.actual_values.to_dict(),
            },
        }


def _matches(expected: float, actual: float) -> bool:
    return abs(expected - actual) < TOLERANCE


def perform_backcheck(
    config: "UsageConfig",
    result: "CalculationResult",
    pricing: Optional[ModelPricing],
    total_input_tokens: float,
    output_tokens: float
) -> BackcheckResult:
    """Recompute total messages and daily cost and compare with a result.
    
    Rules:
    - Total messages: daily_users * conversations_per_user * messages_per_conversation
    - Daily cost: input and output tokens per message times total messages,
      priced per 1K tokens (zero price when the model has no pricing)
    - A quantity matches when |expected - actual| < 0.0001
    
    Token counts are not recomputed: both sides use the precomputed
    values passed in, so the token match flags are always True.
    
    Args:
        config: Usage configuration the result was computed from
        result: Calculation result to verify
        pricing: Pricing of the selected model, or None if unknown
        total_input_tokens: Input tokens per message used by the calculator
        output_tokens: Output tokens per message used by the calculator
        
    Returns:
        BackcheckResult with match flags and compared values
    """
    input_price = pricing.input_price_per_1k if pricing is not None else 0.0
    output_price = pricing.output_price_per_1k if pricing is not None else 0.0

    expected_total_messages = (
        config.daily_users
        * config.conversations_per_user
        * config.messages_per_conversation
    )
    expected_daily_cost = (
        total_input_tokens * expected_total_messages * input_price / 1000
        + output_tokens * expected_total_messages * output_price / 1000
    )

    total_messages_match = _matches(expected_total_messages, result.total_daily_messages)
    daily_cost_match = _matches(expected_daily_cost, result.daily_cost)
    input_tokens_match = True
    output_tokens_match = True

    is_valid = (
        total_messages_match
        and daily_cost_match
        and input_tokens_match
        and output_tokens_match
    )
    if not is_valid:
        logger.warning(
            "Backcheck mismatch for %s: messages %s vs %s, daily cost %s vs %s",
            config.selected_model,
            expected_total_messages,
            result.total_daily_messages,
            expected_daily_cost,
            result.daily_cost
        )

    return BackcheckResult(
        is_valid=is_valid,
        details=BackcheckDetails(
            input_tokens_match=input_tokens_match,
            output_tokens_match=output_tokens_match,
            total_messages_match=total_messages_match,
            daily_cost_match=daily_cost_match,
            expected_values=BackcheckValues(
                input_tokens=total_input_tokens,
                output_tokens=output_tokens,
                total_messages=expected_total_messages,
                daily_cost=expected_daily_cost
            ),
            actual_values=BackcheckValues(
                input_tokens=total_input_tokens,
                output_tokens=output_tokens,
                total_messages=result.total_daily_messages,
                daily_cost=result.daily_cost
            )
        )
    )
