# src/services/change_detector.py

"""Decides whether a fresh snapshot differs from the last stored price.

Pure module: no I/O and no logging, so the comparison rule can be tested
on its own.
"""

from dataclasses import dataclass
from datetime import datetime

from src.models.price_record import PriceRecord
from src.models.price_snapshot import PriceSnapshot

# Absorbs float noise only; any real price delta is far above it
EPSILON = 1e-10


@dataclass(frozen=True)
class PriceNotification:
    """What a subscriber is told about a detected price change."""

    title: str
    price: float
    card_price: float
    link: str


@dataclass(frozen=True)
class PriceChange:
    """A significant change: the record to append and the alert to send."""

    record: PriceRecord
    notification: PriceNotification


def is_significant(
    last: PriceRecord, price: float, card_price: float,
) -> bool:
    """True if either price moved by more than :data:`EPSILON`."""
    return (
        abs(last.base_price - price) > EPSILON
        or abs(last.discounted_price - card_price) > EPSILON
    )


def detect(
    last: PriceRecord,
    snapshot: PriceSnapshot,
    link: str,
    now: datetime | None = None,
) -> PriceChange | None:
    """Compare *snapshot* against *last*; ``None`` means unchanged.

    Missing snapshot prices count as ``0.0``.  *snapshot* must be parsed
    (carry a title); unparsed snapshots are filtered out upstream.
    """
    price = snapshot.price if snapshot.price is not None else 0.0
    card_price = (
        snapshot.card_price if snapshot.card_price is not None else 0.0
    )

    if not is_significant(last, price, card_price):
        return None

    return PriceChange(
        record=PriceRecord(
            base_price=price,
            discounted_price=card_price,
            created_at=now or datetime.now(),
        ),
        notification=PriceNotification(
            title=snapshot.title or "",
            price=price,
            card_price=card_price,
            link=link,
        ),
    )
