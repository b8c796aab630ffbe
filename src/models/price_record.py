# src/models/price_record.py

"""Persisted, immutable price history entry."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PriceRecord:
    """One entry of a product's append-only price history."""

    base_price: float
    discounted_price: float
    created_at: datetime


EMPTY_RECORD = PriceRecord(
    base_price=0.0,
    discounted_price=0.0,
    created_at=datetime.min,
)
