"""
Data models for ingested usage.

Defines the typed record produced by the usage export parser.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawUsageRecord:
    """Immutable record of one row of a usage export.

    Each row represents one or more API requests made by a single user
    against a single model and usage type.
    """
    organization_id: str
    request_count: int
    operation: str
    input_token_count: int
    output_token_count: int
    usage_type: str
    model: str
    timestamp: datetime
    user_id: str
