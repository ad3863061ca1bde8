"""
Tests for the cost calculator.

Covers the reference scenario, zero-usage and unknown-model handling,
history amortization, cost scaling, and the fault fallback.
"""

import math
from dataclasses import replace
from unittest.mock import patch

import pytest

from rag_cost_estimator.core.calculation import (
    DEFAULT_USAGE,
    CalculationResult,
    UsageConfig,
    average_history_tokens,
    calculate_costs,
    history_tokens_for_message,
    round_half_up
)
from rag_cost_estimator.core.backcheck import BackcheckResult
from rag_cost_estimator.core.pricing import ModelPricing, PricingTable


def make_config(**overrides) -> UsageConfig:
    """Reference scenario with selected fields replaced."""
    return replace(DEFAULT_USAGE, **overrides)


def numeric_fields(result: CalculationResult):
    return [
        result.tokens_per_message,
        result.words_per_message,
        result.total_daily_messages,
        result.daily_cost,
        result.monthly_cost,
        result.annual_cost,
        result.cost_per_message,
        result.cost_per_user,
        result.average_history_tokens,
    ]


class TestHistoryTokens:
    """Test conversation history amortization."""
    
    def test_first_message_has_no_history(self):
        assert history_tokens_for_message(0, 40, 100) == 0
    
    def test_history_for_message(self):
        """Message 2 carries two previous exchanges: 2 * (40 + 100)."""
        assert history_tokens_for_message(2, 40, 100) == 280
    
    def test_negative_token_counts_do_not_raise(self):
        assert history_tokens_for_message(2, -40, 100) == 120
    
    def test_average_single_message(self):
        assert average_history_tokens(1, 40, 100) == 0
    
    def test_average_over_conversation(self):
        """(0 + 1 + 2 + 3 + 4) * (24 + 80) / 5 = 208."""
        assert average_history_tokens(5, 24, 80) == 208
    
    def test_average_is_not_rounded(self):
        """(0 + 1) * 3 / 2 = 1.5."""
        assert average_history_tokens(2, 1, 2) == 1.5
    
    def test_reported_average_rounds_half_up(self):
        """Query 1 word -> 2 tokens, response 2 words -> 3 tokens: (0 + 5) / 2 = 2.5."""
        config = make_config(messages_per_conversation=2, user_query_words=1, response_words=2)
        assert calculate_costs(config).average_history_tokens == 3
    
    def test_reported_average_rounds_half_up_longer_conversation(self):
        """(0 + 1 + 2 + 3) * 5 / 4 = 7.5."""
        config = make_config(messages_per_conversation=4, user_query_words=1, response_words=2)
        assert calculate_costs(config).average_history_tokens == 8


class TestRoundHalfUp:
    """Halves round towards +inf, not to even."""
    
    @pytest.mark.parametrize("value, expected", [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (2.4, 2),
        (-0.5, 0),
        (-1.5, -1),
        (-2.5, -2),
        (-2.6, -3),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected
    
    def test_non_finite_passes_through(self):
        assert math.isnan(round_half_up(float("nan")))
        assert round_half_up(float("inf")) == float("inf")


class TestReferenceScenario:
    """Test the reference configuration end to end."""
    
    def test_total_daily_messages(self):
        result = calculate_costs(DEFAULT_USAGE)
        # 100 users * 3 conversations * 5 messages
        assert result.total_daily_messages == 1500
    
    def test_backcheck_is_valid(self):
        result = calculate_costs(DEFAULT_USAGE)
        assert result.backcheck is not None
        assert result.backcheck.is_valid
    
    def test_token_volumes(self):
        result = calculate_costs(DEFAULT_USAGE)
        # chunk 266, query 24, response 80, history 208
        # input = 2 * 266 + 24 + 208 = 764, per message = 764 + 80
        assert result.tokens_per_message == 844
        assert result.words_per_message == 635
        assert result.average_history_tokens == 208
    
    def test_costs(self):
        result = calculate_costs(DEFAULT_USAGE)
        # 764 * 1500 / 1000 * 0.0025 + 80 * 1500 / 1000 * 0.01
        assert result.daily_cost == pytest.approx(4.065)
        assert result.monthly_cost == pytest.approx(121.95)
        assert result.annual_cost == pytest.approx(1483.725)
        assert result.cost_per_message == pytest.approx(121.95 / 45000)
        assert result.cost_per_user == pytest.approx(1.2195)
    
    def test_backcheck_values(self):
        result = calculate_costs(DEFAULT_USAGE)
        details = result.backcheck.details
        assert details.expected_values.total_messages == 1500
        assert details.actual_values.total_messages == 1500
        assert details.expected_values.input_tokens == 764
        assert details.expected_values.output_tokens == 80
        assert details.total_messages_match
        assert details.daily_cost_match


class TestExactCosts:
    """Test cost arithmetic on a scenario with round token counts."""
    
    def test_daily_monthly_annual(self):
        """1320 input and 100 output tokens per message, 1500 messages a day."""
        # chunk 481 words -> 640 tokens, query 30 -> 40, response 75 -> 100
        config = make_config(
            daily_users=1500,
            conversations_per_user=1,
            messages_per_conversation=1,
            words_per_chunk=481,
            chunks_per_query=2,
            user_query_words=30,
            response_words=75
        )
        result = calculate_costs(config)
        
        assert result.tokens_per_message == 1420
        assert result.total_daily_messages == 1500
        # 4.95 input + 1.5 output
        assert result.daily_cost == 6.45
        assert result.monthly_cost == 193.5
        assert result.annual_cost == 2354.25
        assert result.backcheck.is_valid
    
    @pytest.mark.parametrize("users", [1, 7, 100, 12345])
    def test_period_scaling(self, users):
        result = calculate_costs(make_config(daily_users=users))
        assert result.monthly_cost == result.daily_cost * 30
        assert result.annual_cost == result.daily_cost * 365
    
    def test_custom_periods(self):
        result = calculate_costs(DEFAULT_USAGE, days_per_month=31, days_per_year=366)
        assert result.monthly_cost == result.daily_cost * 31
        assert result.annual_cost == result.daily_cost * 366
        assert result.cost_per_message == pytest.approx(result.daily_cost / 1500)


class TestZeroUsage:
    """Test the zero-usage short circuit."""
    
    @pytest.mark.parametrize("field", [
        "daily_users",
        "conversations_per_user",
        "messages_per_conversation",
    ])
    def test_zero_usage_gives_valid_zero_result(self, field):
        result = calculate_costs(make_config(**{field: 0}))
        
        assert all(value == 0 for value in numeric_fields(result))
        assert result.backcheck.is_valid
        details = result.backcheck.details
        assert details.input_tokens_match
        assert details.output_tokens_match
        assert details.total_messages_match
        assert details.daily_cost_match
        assert details.expected_values.daily_cost == 0
        assert details.actual_values.total_messages == 0
    
    def test_zero_words_still_counts_messages(self):
        result = calculate_costs(make_config(words_per_chunk=0, user_query_words=0, response_words=0))
        assert result.total_daily_messages == 1500
        assert result.tokens_per_message == 0
        assert result.daily_cost == 0
        assert result.backcheck.is_valid


class TestUnknownModel:
    """Test pricing fallback for models missing from the table."""
    
    def test_costs_are_zero(self):
        result = calculate_costs(make_config(selected_model="not-a-model"))
        assert result.daily_cost == 0
        assert result.monthly_cost == 0
        assert result.annual_cost == 0
        assert result.backcheck.is_valid
    
    def test_volumes_still_computed(self):
        result = calculate_costs(make_config(selected_model="not-a-model"))
        assert result.total_daily_messages == 1500
        assert result.tokens_per_message == 844


class TestCustomPricing:
    """Test calculations against a supplied price table."""
    
    def test_uses_supplied_table(self):
        table = PricingTable({
            "cheap": ModelPricing("Cheap", "", input_price_per_1k=0.001, output_price_per_1k=0.002)
        })
        result = calculate_costs(make_config(selected_model="cheap"), table)
        # 764 * 1500 / 1000 * 0.001 + 80 * 1500 / 1000 * 0.002
        assert result.daily_cost == pytest.approx(1.146 + 0.24)
        assert result.backcheck.is_valid
    
    def test_default_model_missing_from_supplied_table(self):
        table = PricingTable({})
        result = calculate_costs(DEFAULT_USAGE, table)
        assert result.daily_cost == 0
        assert result.backcheck.is_valid


class TestMonotonicity:
    """Increasing usage increases messages and cost."""
    
    @pytest.mark.parametrize("field", [
        "daily_users",
        "conversations_per_user",
        "messages_per_conversation",
    ])
    def test_increasing_usage(self, field):
        base = calculate_costs(DEFAULT_USAGE)
        bigger = calculate_costs(make_config(**{field: getattr(DEFAULT_USAGE, field) + 1}))
        assert bigger.total_daily_messages > base.total_daily_messages
        assert bigger.daily_cost > base.daily_cost


class TestPermissiveInputs:
    """Out-of-range inputs are propagated, not rejected."""
    
    def test_negative_users(self):
        result = calculate_costs(make_config(daily_users=-10))
        assert result.total_daily_messages == -150
        assert result.daily_cost < 0
        assert result.cost_per_user == 0
        assert result.cost_per_message == 0
        assert result.backcheck.is_valid
    
    def test_fractional_usage(self):
        result = calculate_costs(make_config(daily_users=2.5))
        assert result.total_daily_messages == 37.5
        assert result.backcheck.is_valid
    
    def test_nan_users_propagate(self):
        result = calculate_costs(make_config(daily_users=float("nan")))
        assert math.isnan(result.total_daily_messages)
        assert math.isnan(result.daily_cost)
        assert not result.backcheck.is_valid
        assert not result.backcheck.details.total_messages_match
    
    def test_nan_words_propagate(self):
        result = calculate_costs(make_config(response_words=float("nan")))
        assert math.isnan(result.tokens_per_message)
        assert not result.backcheck.is_valid


class TestFaultFallback:
    """Unexpected faults produce an invalid zero result instead of raising."""
    
    def _assert_failed(self, result: CalculationResult):
        assert all(value == 0 for value in numeric_fields(result))
        backcheck = result.backcheck
        assert not backcheck.is_valid
        assert not backcheck.details.input_tokens_match
        assert not backcheck.details.output_tokens_match
        assert not backcheck.details.total_messages_match
        assert not backcheck.details.daily_cost_match
        assert backcheck.details.expected_values.daily_cost == 0
        assert backcheck.details.actual_values.total_messages == 0
    
    def test_arithmetic_error(self):
        with patch(
            "rag_cost_estimator.core.calculation.words_to_tokens",
            side_effect=ArithmeticError("boom")
        ):
            result = calculate_costs(DEFAULT_USAGE)
        self._assert_failed(result)
    
    def test_type_error_from_bad_input(self):
        result = calculate_costs(make_config(words_per_chunk="two hundred"))
        self._assert_failed(result)
    
    def test_fault_is_logged(self, caplog):
        with caplog.at_level("ERROR", logger="rag_cost_estimator.core.calculation"):
            calculate_costs(make_config(words_per_chunk="two hundred"))
        assert "Calculation error" in caplog.text


class TestCalculationResult:
    """Test the result value object."""
    
    def test_backcheck_is_required(self):
        with pytest.raises(TypeError):
            CalculationResult(
                tokens_per_message=0,
                words_per_message=0,
                total_daily_messages=0,
                daily_cost=0,
                monthly_cost=0,
                annual_cost=0,
                cost_per_message=0,
                cost_per_user=0,
                average_history_tokens=0
            )
    
    def test_every_path_attaches_a_backcheck(self):
        for config in (DEFAULT_USAGE, make_config(daily_users=0), make_config(words_per_chunk="x")):
            assert isinstance(calculate_costs(config).backcheck, BackcheckResult)


class TestUsageConfigSerialization:
    """Test camelCase state serialization."""
    
    def test_to_dict_keys(self):
        data = DEFAULT_USAGE.to_dict()
        assert data == {
            "selectedModel": "gpt-4o",
            "dailyUsers": 100,
            "conversationsPerUser": 3,
            "messagesPerConversation": 5,
            "wordsPerChunk": 200,
            "chunksPerQuery": 2,
            "userQueryWords": 18,
            "responseWords": 60,
        }
    
    def test_from_dict_fills_missing_keys(self):
        config = UsageConfig.from_dict({"dailyUsers": 42, "unrelated": True})
        assert config.daily_users == 42
        assert config.messages_per_conversation == 5
    
    def test_result_to_dict(self):
        data = calculate_costs(DEFAULT_USAGE).to_dict()
        assert data["totalDailyMessages"] == 1500
        assert data["backcheck"]["isValid"] is True
        assert data["backcheck"]["details"]["expectedValues"]["totalMessages"] == 1500
