"""
Unit tests for pricing calculations.

Tests price lookup, cost accuracy and error reporting.
"""

import pytest

from usage_cost.core.pricing import (
    DEFAULT_PRICE_TABLE,
    BatchPrice,
    PriceTable,
    PricingKey,
    UnknownPricingKey,
    UsageTypePricing,
    calculate_cost,
)


def _pricing(input_cost, output_cost, tokens=1000):
    return UsageTypePricing(
        input=BatchPrice(cost_per_batch=input_cost, tokens_per_batch=tokens),
        output=BatchPrice(cost_per_batch=output_cost, tokens_per_batch=tokens),
    )


class TestBatchPrice:
    """Test BatchPrice validation."""

    def test_zero_tokens_per_batch_rejected(self):
        """Verify a zero batch size is rejected."""
        with pytest.raises(ValueError, match="tokens_per_batch must be > 0"):
            BatchPrice(cost_per_batch=0.01, tokens_per_batch=0)

    def test_negative_cost_rejected(self):
        """Verify negative prices are rejected."""
        with pytest.raises(ValueError, match="cost_per_batch cannot be negative"):
            BatchPrice(cost_per_batch=-0.01, tokens_per_batch=1000)

    def test_free_batch_allowed(self):
        """Verify a zero price is allowed."""
        assert BatchPrice(cost_per_batch=0.0, tokens_per_batch=1000).cost_per_batch == 0.0


class TestPriceTable:
    """Test price table lookups."""

    def test_get_supported_model(self):
        """Verify pricing retrieval for a built-in model."""
        pricing = DEFAULT_PRICE_TABLE.get_pricing("gpt-4", "text")
        assert pricing.input.cost_per_batch == 0.03
        assert pricing.input.tokens_per_batch == 1000
        assert pricing.output.cost_per_batch == 0.06
        assert pricing.output.tokens_per_batch == 1000

    def test_default_table_models(self):
        """Verify the built-in table covers the GPT-4 and GPT-3.5 models."""
        assert "gpt-4-1106-preview" in DEFAULT_PRICE_TABLE.models
        assert "gpt-3.5-turbo-instruct" in DEFAULT_PRICE_TABLE.models
        assert len(DEFAULT_PRICE_TABLE.models) == 9

    def test_unknown_model_raises_error(self):
        """Verify the error names the missing model."""
        with pytest.raises(UnknownPricingKey, match="Unknown model: unknown-model") as exc_info:
            DEFAULT_PRICE_TABLE.get_pricing("unknown-model", "text")

        assert exc_info.value.model == "unknown-model"
        assert exc_info.value.usage_type == "text"
        assert exc_info.value.missing_key is PricingKey.MODEL

    def test_unknown_usage_type_raises_error(self):
        """Verify the error names the missing usage type and its model."""
        with pytest.raises(
            UnknownPricingKey, match="Unknown usage type: image for model gpt-4"
        ) as exc_info:
            DEFAULT_PRICE_TABLE.get_pricing("gpt-4", "image")

        assert exc_info.value.missing_key is PricingKey.USAGE_TYPE

    def test_unknown_pricing_key_is_lookup_error(self):
        """Verify callers can catch it as a LookupError."""
        table = PriceTable({})
        with pytest.raises(LookupError):
            table.get_pricing("gpt-4", "text")


class TestCostCalculation:
    """Test cost calculation accuracy."""

    def test_exact_cost_gpt4(self):
        """Verify exact cost calculation for GPT-4."""
        pricing = DEFAULT_PRICE_TABLE.get_pricing("gpt-4", "text")
        cost = calculate_cost(pricing, 1000, 500)
        # Input: 1000/1000 * $0.03 = $0.03
        # Output: 500/1000 * $0.06 = $0.03
        assert cost == pytest.approx(0.06)

    def test_no_rounding(self):
        """Verify sub-cent costs are not rounded."""
        pricing = _pricing(0.001, 0.002)
        cost = calculate_cost(pricing, 1, 1)
        # Input: 1/1000 * $0.001 = $0.000001
        # Output: 1/1000 * $0.002 = $0.000002
        assert cost == pytest.approx(0.000003)

    def test_zero_tokens_cost(self):
        """Verify zero tokens cost nothing."""
        assert calculate_cost(_pricing(0.03, 0.06), 0, 0) == 0.0

    def test_input_only_cost(self):
        """Verify cost with only input tokens."""
        assert calculate_cost(_pricing(0.03, 0.06), 2000, 0) == pytest.approx(0.06)

    def test_output_only_cost(self):
        """Verify cost with only output tokens."""
        assert calculate_cost(_pricing(0.03, 0.06), 0, 2000) == pytest.approx(0.12)

    def test_different_batch_sizes(self):
        """Verify input and output batches are applied independently."""
        pricing = UsageTypePricing(
            input=BatchPrice(cost_per_batch=1.0, tokens_per_batch=1_000_000),
            output=BatchPrice(cost_per_batch=0.5, tokens_per_batch=100),
        )
        cost = calculate_cost(pricing, 500_000, 300)
        # Input: 500000/1000000 * $1.00 = $0.50
        # Output: 300/100 * $0.50 = $1.50
        assert cost == pytest.approx(2.0)

    def test_partial_batches_are_prorated(self):
        """Verify token counts that don't fill a batch are prorated."""
        cost = calculate_cost(_pricing(0.03, 0.06), 1500, 250)
        # Input: 1.5 * $0.03 = $0.045
        # Output: 0.25 * $0.06 = $0.015
        assert cost == pytest.approx(0.06)
