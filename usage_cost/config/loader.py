"""
Configuration management and loading.

Handles price tables, user maps and environment settings.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from usage_cost.core.pricing import BatchPrice, PriceTable, UsageTypePricing

ENV_PREFIX = "USAGE_COST_"
VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""
    log_level: str = "WARNING"
    prices_path: Optional[str] = None

    def __post_init__(self):
        """Validate log level is one logging understands."""
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {list(VALID_LOG_LEVELS)}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from USAGE_COST_* environment variables."""
    env = os.environ if environ is None else environ
    return Settings(
        log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "WARNING").upper(),
        prices_path=env.get(f"{ENV_PREFIX}PRICES") or None,
    )


def _read_config(path: str, kind: str) -> Any:
    """Read a JSON or YAML document; an empty file reads as None."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        content = f.read()
    if not content.strip():
        return None

    if config_path.suffix.lower() == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {kind.lower()} file {path}: {e}") from e
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in {kind.lower()} file {path}: {e}") from e


def load_price_table(path: str) -> PriceTable:
    """Load and validate a price table from a YAML file.

    Expected layout::

        gpt-4:
          text:
            input: {cost: 0.03, tokens: 1000}
            output: {cost: 0.06, tokens: 1000}

    Args:
        path: Path to YAML price table

    Returns:
        Validated PriceTable

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the table is invalid
    """
    raw_prices = _read_config(path, "Price table")
    if not raw_prices:
        raise ValueError("Price table file is empty")
    if not isinstance(raw_prices, dict):
        raise ValueError("Price table must be a dictionary of models")

    prices: Dict[str, Dict[str, UsageTypePricing]] = {}
    for model, usage_types in raw_prices.items():
        if not isinstance(usage_types, dict) or not usage_types:
            raise ValueError(f"Model '{model}' must map usage types to prices")
        prices[str(model)] = {
            str(usage_type): _parse_usage_type_pricing(data, f"{model}.{usage_type}")
            for usage_type, data in usage_types.items()
        }

    return PriceTable(prices)


def _parse_usage_type_pricing(data: Any, path: str) -> UsageTypePricing:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'input', 'output'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    for key in ('input', 'output'):
        if key not in data:
            raise ValueError(f"Missing required '{key}' in {path}")

    return UsageTypePricing(
        input=_parse_batch_price(data['input'], f"{path}.input"),
        output=_parse_batch_price(data['output'], f"{path}.output"),
    )


def _parse_batch_price(data: Any, path: str) -> BatchPrice:
    """Parse and validate a {cost, tokens} pair.

    Raises:
        ValueError: If the pair is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    allowed_keys = {'cost', 'tokens'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'cost' not in data:
        raise ValueError(f"Missing required 'cost' in {path}")
    cost = data['cost']
    if isinstance(cost, bool) or not isinstance(cost, (int, float)) or cost < 0:
        raise ValueError(f"'cost' in {path} must be a number >= 0")

    if 'tokens' not in data:
        raise ValueError(f"Missing required 'tokens' in {path}")
    tokens = data['tokens']
    if isinstance(tokens, bool) or not isinstance(tokens, int) or tokens <= 0:
        raise ValueError(f"'tokens' in {path} must be an integer > 0")

    return BatchPrice(cost_per_batch=float(cost), tokens_per_batch=tokens)


def load_user_map(path: str) -> Dict[str, str]:
    """Load a user id -> display name mapping.

    Accepts JSON or YAML. An empty file yields an empty mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the content can't be parsed
        ValueError: If the content is not a flat string mapping
    """
    raw_map = _read_config(path, "User map")
    if raw_map is None:
        return {}
    if not isinstance(raw_map, dict):
        raise ValueError("User map must be a dictionary of user id to name")

    user_map = {}
    for user_id, name in raw_map.items():
        if not isinstance(name, str):
            raise ValueError(f"Name for user '{user_id}' must be a string")
        user_map[str(user_id)] = name
    return user_map
