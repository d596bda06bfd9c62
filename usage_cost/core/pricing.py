"""
Pricing tables and cost calculations.

Prices are quoted per batch of tokens (e.g. $0.03 per 1000 input tokens)
and looked up by model and usage type.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class PricingKey(Enum):
    """Which level of the price table a lookup failed on."""
    MODEL = "model"
    USAGE_TYPE = "usage_type"


class UnknownPricingKey(LookupError):
    """Raised when a model or usage type has no entry in the price table."""

    def __init__(self, model: str, usage_type: str, missing_key: PricingKey):
        if missing_key is PricingKey.MODEL:
            message = f"Unknown model: {model}"
        else:
            message = f"Unknown usage type: {usage_type} for model {model}"
        super().__init__(message)
        self.model = model
        self.usage_type = usage_type
        self.missing_key = missing_key


@dataclass(frozen=True)
class BatchPrice:
    """Cost of one batch of tokens."""
    cost_per_batch: float
    tokens_per_batch: int

    def __post_init__(self):
        """Validate the batch is usable as a divisor."""
        if self.tokens_per_batch <= 0:
            raise ValueError("tokens_per_batch must be > 0")
        if self.cost_per_batch < 0:
            raise ValueError("cost_per_batch cannot be negative")


@dataclass(frozen=True)
class UsageTypePricing:
    """Input and output prices for one model and usage type."""
    input: BatchPrice
    output: BatchPrice


@dataclass(frozen=True)
class PriceTable:
    """Two-level price lookup: model -> usage type -> pricing."""
    prices: Dict[str, Dict[str, UsageTypePricing]]

    def get_pricing(self, model: str, usage_type: str) -> UsageTypePricing:
        """Get pricing for a model and usage type.

        Args:
            model: Model identifier
            usage_type: Usage type within the model (e.g. "text")

        Returns:
            UsageTypePricing for the pair

        Raises:
            UnknownPricingKey: If the model or the usage type is not priced
        """
        if model not in self.prices:
            raise UnknownPricingKey(model, usage_type, PricingKey.MODEL)
        model_prices = self.prices[model]
        if usage_type not in model_prices:
            raise UnknownPricingKey(model, usage_type, PricingKey.USAGE_TYPE)
        return model_prices[usage_type]

    @property
    def models(self) -> List[str]:
        return sorted(self.prices)


def _per_1k(input_cost: float, output_cost: float) -> Dict[str, UsageTypePricing]:
    return {
        "text": UsageTypePricing(
            input=BatchPrice(cost_per_batch=input_cost, tokens_per_batch=1000),
            output=BatchPrice(cost_per_batch=output_cost, tokens_per_batch=1000),
        )
    }


# Hand-maintained, USD
DEFAULT_PRICE_TABLE = PriceTable({
    "gpt-4-1106-preview": _per_1k(0.01, 0.03),
    "gpt-4": _per_1k(0.03, 0.06),
    "gpt-4-0613": _per_1k(0.03, 0.06),
    "gpt4-32k": _per_1k(0.06, 0.12),
    "gpt-3.5-turbo-1106": _per_1k(0.001, 0.002),
    "gpt-3.5-turbo-0613": _per_1k(0.001, 0.002),
    "gpt-3.5-turbo-16k-0613": _per_1k(0.001, 0.002),
    "gpt-3.5-turbo-0301": _per_1k(0.001, 0.002),
    "gpt-3.5-turbo-instruct": _per_1k(0.0015, 0.002),
})


def calculate_cost(pricing: UsageTypePricing, input_tokens: int, output_tokens: int) -> float:
    """Calculate cost for a token volume under the given pricing.

    No rounding is applied, so the result is consistent with the token
    totals regardless of how they were accumulated.

    Args:
        pricing: Input/output prices for the model and usage type
        input_tokens: Number of input (context) tokens
        output_tokens: Number of output (generated) tokens

    Returns:
        Cost in USD
    """
    input_cost = (input_tokens / pricing.input.tokens_per_batch) * pricing.input.cost_per_batch
    output_cost = (output_tokens / pricing.output.tokens_per_batch) * pricing.output.cost_per_batch
    return input_cost + output_cost
