"""
Report serialization.

The JSON layout keeps the field names of the original usage report
(name, id, start, end, models, cost) so existing consumers keep working.
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping

from rich.table import Table

from usage_cost.core.aggregation import ModelUsageAggregate, UserUsageAggregate


def _model_to_dict(model_usage: ModelUsageAggregate) -> Dict[str, Any]:
    return {
        "model": model_usage.model,
        "n_requests": model_usage.request_count,
        "n_input_tokens": model_usage.input_token_count,
        "n_output_tokens": model_usage.output_token_count,
        "cost": model_usage.cost,
    }


def usage_to_dict(usages: Mapping[str, UserUsageAggregate]) -> Dict[str, Dict[str, Any]]:
    """Convert aggregation results into a JSON-ready dictionary."""
    return {
        user_id: {
            "name": usage.display_name,
            "id": usage.user_id,
            "start": usage.period_start.isoformat(),
            "end": usage.period_end.isoformat(),
            "models": {
                name: _model_to_dict(model_usage)
                for name, model_usage in usage.models.items()
            },
            "cost": usage.total_cost,
        }
        for user_id, usage in usages.items()
    }


def render_report(usages: Mapping[str, UserUsageAggregate]) -> str:
    """Render aggregation results as pretty-printed JSON."""
    return json.dumps(usage_to_dict(usages), indent=2, ensure_ascii=False)


def write_report(usages: Mapping[str, UserUsageAggregate], path: str) -> None:
    """Write aggregation results as pretty-printed JSON to a file.

    Parent directories are created as needed.
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(render_report(usages))
        f.write("\n")


def _format_currency(amount: float) -> str:
    return f"${amount:,.4f}"


def build_summary_table(usages: Mapping[str, UserUsageAggregate]) -> Table:
    """Build a per-user cost table, most expensive user first."""
    table = Table(title="Usage Cost by User")
    table.add_column("User")
    table.add_column("Period")
    table.add_column("Requests", justify="right")
    table.add_column("Input tokens", justify="right")
    table.add_column("Output tokens", justify="right")
    table.add_column("Cost", justify="right")

    ranked = sorted(usages.values(), key=lambda u: u.total_cost, reverse=True)
    for usage in ranked:
        models = usage.models.values()
        table.add_row(
            usage.display_name,
            f"{usage.period_start:%Y-%m-%d} - {usage.period_end:%Y-%m-%d}",
            f"{sum(m.request_count for m in models):,}",
            f"{sum(m.input_token_count for m in models):,}",
            f"{sum(m.output_token_count for m in models):,}",
            _format_currency(usage.total_cost),
        )

    total = sum(u.total_cost for u in ranked)
    table.caption = f"Total: {_format_currency(total)}"
    return table
