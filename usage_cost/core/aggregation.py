"""
Usage aggregation and cost calculation.

Folds raw usage records into per-user, per-model totals and prices them.

Model costs are always recomputed from the cumulative token counts rather
than summed per record, so the cost of a partition depends only on its
token totals and not on how many rows contributed to them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from .pricing import PriceTable, calculate_cost
from usage_cost.storage.models import RawUsageRecord

logger = logging.getLogger(__name__)


@dataclass
class ModelUsageAggregate:
    """Running usage and cost for one user and one model."""
    model: str
    request_count: int = 0
    input_token_count: int = 0
    output_token_count: int = 0
    cost: float = 0.0


@dataclass
class UserUsageAggregate:
    """Running usage and cost for one user across all models."""
    display_name: str
    user_id: str
    period_start: datetime
    period_end: datetime
    models: Dict[str, ModelUsageAggregate] = field(default_factory=dict)
    total_cost: float = 0.0


class UsageAccumulator:
    """Accumulates usage records into per-user aggregates.

    Partitions (user, then user+model) are created on first access.
    The accumulator owns every aggregate until ``snapshot`` hands them over.
    """

    def __init__(self, prices: PriceTable, name_map: Optional[Mapping[str, str]] = None):
        self.prices = prices
        self.name_map = name_map or {}
        self._users: Dict[str, UserUsageAggregate] = {}
        self.record_count = 0

    def _user(self, record: RawUsageRecord) -> UserUsageAggregate:
        usage = self._users.get(record.user_id)
        if usage is None:
            usage = UserUsageAggregate(
                display_name=self.name_map.get(record.user_id, record.user_id),
                user_id=record.user_id,
                period_start=record.timestamp,
                period_end=record.timestamp,
            )
            self._users[record.user_id] = usage
            logger.debug("New user partition %s (%s)", usage.user_id, usage.display_name)
        return usage

    def add(self, record: RawUsageRecord) -> None:
        """Fold a single record into the running totals.

        Raises:
            UnknownPricingKey: If the record's model or usage type is not priced
        """
        usage = self._user(record)
        if record.timestamp < usage.period_start:
            usage.period_start = record.timestamp
        if record.timestamp > usage.period_end:
            usage.period_end = record.timestamp

        model_usage = usage.models.get(record.model)
        if model_usage is None:
            model_usage = ModelUsageAggregate(model=record.model)
            usage.models[record.model] = model_usage
            logger.debug("New model partition %s for user %s", record.model, usage.user_id)

        model_usage.request_count += record.request_count
        model_usage.input_token_count += record.input_token_count
        model_usage.output_token_count += record.output_token_count

        pricing = self.prices.get_pricing(record.model, record.usage_type)
        model_usage.cost = calculate_cost(
            pricing,
            model_usage.input_token_count,
            model_usage.output_token_count,
        )
        # Summed in model-name order so the total is independent of arrival order
        usage.total_cost = sum(usage.models[name].cost for name in sorted(usage.models))
        self.record_count += 1

    def snapshot(self) -> Dict[str, UserUsageAggregate]:
        """Return the per-user aggregates keyed by user id."""
        return self._users


def aggregate(
    records: Iterable[RawUsageRecord],
    name_map: Optional[Mapping[str, str]],
    prices: PriceTable,
) -> Dict[str, UserUsageAggregate]:
    """Aggregate usage records into per-user cost summaries.

    Records are folded in the order given. A record whose model or usage
    type is missing from ``prices`` aborts the whole run; no partial result
    is returned.

    Args:
        records: Parsed usage records
        name_map: Optional mapping from user id to display name
        prices: Price table covering every (model, usage type) in records

    Returns:
        Mapping from user id to UserUsageAggregate

    Raises:
        UnknownPricingKey: If a record references an unpriced model or usage type
    """
    accumulator = UsageAccumulator(prices, name_map)
    for record in records:
        accumulator.add(record)

    usages = accumulator.snapshot()
    logger.info(
        "Aggregated %d records into %d users",
        accumulator.record_count,
        len(usages),
    )
    return usages
