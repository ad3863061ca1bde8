"""
Cost and token projection for a RAG chat workload.

Maps a usage configuration and a model price table to projected token
volumes and daily, monthly and annual costs, then verifies the result
with an independent backcheck.

The calculation is pure and deterministic:
1. No side effects apart from diagnostic logging
2. No exceptions raised to the caller (faults become an invalid result)
3. No validation of inputs beyond the zero-usage guard
"""

import logging
import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping

from .backcheck import BackcheckResult, perform_backcheck
from .pricing import PRICING_TABLE, PricingTable
from .token_counter import TokenUsage, tokens_to_words, words_to_tokens

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365

# Serialized (browser state) key for each UsageConfig field
_STATE_KEYS = {
    "selected_model": "selectedModel",
    "daily_users": "dailyUsers",
    "conversations_per_user": "conversationsPerUser",
    "messages_per_conversation": "messagesPerConversation",
    "words_per_chunk": "wordsPerChunk",
    "chunks_per_query": "chunksPerQuery",
    "user_query_words": "userQueryWords",
    "response_words": "responseWords",
}


@dataclass(frozen=True)
class UsageConfig:
    """Usage parameters for one estimate.
    
    No invariants are enforced here; the calculator only guards against
    zero usage.
    """
    selected_model: str
    daily_users: float
    conversations_per_user: float
    messages_per_conversation: float
    words_per_chunk: float
    chunks_per_query: float
    user_query_words: float
    response_words: float

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used for shared state."""
        values = asdict(self)
        return {_STATE_KEYS[name]: value for name, value in values.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UsageConfig":
        """Build a config from camelCase state, defaulting missing keys."""
        values = asdict(DEFAULT_USAGE)
        for name, key in _STATE_KEYS.items():
            if key in data:
                values[name] = data[key]
        return cls(**values)


DEFAULT_USAGE = UsageConfig(
    selected_model="gpt-4o",
    daily_users=100,
    conversations_per_user=3,
    messages_per_conversation=5,
    words_per_chunk=200,
    chunks_per_query=2,
    user_query_words=18,
    response_words=60
)


@dataclass(frozen=True)
class CalculationResult:
    """Projected tokens and costs for a usage configuration.
    
    Cost per message and cost per user are normalized to a month.
    """
    tokens_per_message: float
    words_per_message: float
    total_daily_messages: float
    daily_cost: float
    monthly_cost: float
    annual_cost: float
    cost_per_message: float
    cost_per_user: float
    average_history_tokens: float
    backcheck: BackcheckResult

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "tokensPerMessage": self.tokens_per_message,
            "wordsPerMessage": self.words_per_message,
            "totalDailyMessages": self.total_daily_messages,
            "dailyCost": self.daily_cost,
            "monthlyCost": self.monthly_cost,
            "annualCost": self.annual_cost,
            "costPerMessage": self.cost_per_message,
            "costPerUser": self.cost_per_user,
            "averageHistoryTokens": self.average_history_tokens,
        }
        data["backcheck"] = self.backcheck.to_dict()
        return data


def _empty_result(backcheck: BackcheckResult) -> CalculationResult:
    return CalculationResult(
        tokens_per_message=0,
        words_per_message=0,
        total_daily_messages=0,
        daily_cost=0,
        monthly_cost=0,
        annual_cost=0,
        cost_per_message=0,
        cost_per_user=0,
        average_history_tokens=0,
        backcheck=backcheck
    )


def history_tokens_for_message(message_index: int, query_tokens: float, output_tokens: float) -> float:
    """History carried by a message: every earlier query and response."""
    if message_index == 0:
        return 0
    return message_index * (query_tokens + output_tokens)


def average_history_tokens(
    messages_per_conversation: float,
    query_tokens: float,
    output_tokens: float
) -> float:
    """Average history tokens per message over one conversation.
    
    Message i (0-indexed) carries i prior exchanges, so the first message
    has no history. The result is not rounded.
    """
    total = sum(
        history_tokens_for_message(index, query_tokens, output_tokens)
        for index in range(_sequence_length(messages_per_conversation))
    )
    return total / messages_per_conversation


def _sequence_length(value: float) -> int:
    """Truncate a count to a usable length (NaN and negatives give 0)."""
    if value != value:
        return 0
    return max(int(value), 0)


def round_half_up(value: float) -> float:
    """Round to the nearest integer, halves towards +inf."""
    if not math.isfinite(value):
        return value
    return math.floor(value + 0.5)


def calculate_costs(
    config: UsageConfig,
    pricing_table: PricingTable = PRICING_TABLE,
    days_per_month: int = DAYS_PER_MONTH,
    days_per_year: int = DAYS_PER_YEAR
) -> CalculationResult:
    """
    Project tokens and costs for a usage configuration.
    
    An unknown model is priced at zero; token and message volumes are
    still computed. Zero daily users, conversations or messages give an
    all-zero result with a valid backcheck. Any fault during the
    computation is logged and gives an all-zero result with an invalid
    backcheck, so callers always get a complete result.
    
    Args:
        config: Usage configuration to estimate
        pricing_table: Prices to look the selected model up in
        days_per_month: Multiplier for monthly cost and per-message/per-user normalization
        days_per_year: Multiplier for annual cost
        
    Returns:
        CalculationResult with its backcheck attached
    """
    try:
        pricing = pricing_table.get_pricing(config.selected_model)

        if (config.daily_users == 0 or
                config.conversations_per_user == 0 or
                config.messages_per_conversation == 0):
            return _empty_result(BackcheckResult.passed_empty())

        chunk_tokens = words_to_tokens(config.words_per_chunk)
        query_tokens = words_to_tokens(config.user_query_words)
        output_tokens = words_to_tokens(config.response_words)

        history_tokens = average_history_tokens(
            config.messages_per_conversation,
            query_tokens,
            output_tokens
        )

        total_input_tokens = config.chunks_per_query * chunk_tokens + query_tokens + history_tokens
        usage = TokenUsage(prompt_tokens=total_input_tokens, completion_tokens=output_tokens)

        total_daily_messages = (
            config.daily_users
            * config.conversations_per_user
            * config.messages_per_conversation
        )

        input_price = pricing_table.input_price(config.selected_model)
        output_price = pricing_table.output_price(config.selected_model)
        daily_input_cost = usage.prompt_tokens * total_daily_messages / 1000 * input_price
        daily_output_cost = usage.completion_tokens * total_daily_messages / 1000 * output_price

        daily_cost = daily_input_cost + daily_output_cost
        monthly_cost = daily_cost * days_per_month
        annual_cost = daily_cost * days_per_year

        if total_daily_messages > 0:
            cost_per_message = monthly_cost / (total_daily_messages * days_per_month)
        else:
            cost_per_message = 0

        if config.daily_users > 0:
            cost_per_user = monthly_cost / config.daily_users
        else:
            cost_per_user = 0

        result = CalculationResult(
            tokens_per_message=usage.total_tokens,
            words_per_message=tokens_to_words(usage.total_tokens),
            total_daily_messages=total_daily_messages,
            daily_cost=daily_cost,
            monthly_cost=monthly_cost,
            annual_cost=annual_cost,
            cost_per_message=cost_per_message,
            cost_per_user=cost_per_user,
            average_history_tokens=round_half_up(history_tokens),
            # unverified until the backcheck below replaces it
            backcheck=BackcheckResult.failed_empty()
        )

        backcheck = perform_backcheck(
            config,
            result,
            pricing,
            total_input_tokens,
            output_tokens
        )
        return replace(result, backcheck=backcheck)
    except Exception:
        logger.exception("Calculation error for model %r", getattr(config, "selected_model", None))
        return _empty_result(BackcheckResult.failed_empty())
