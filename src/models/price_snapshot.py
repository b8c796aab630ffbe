# src/models/price_snapshot.py

"""Transient price observation returned by a marketplace parser."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceSnapshot:
    """A single point-in-time price observation for a product page.

    A snapshot without a title means the parser could not make sense of
    the page; its price fields are then meaningless.
    """

    title: str | None = None
    price: float | None = None
    card_price: float | None = None

    @property
    def is_parsed(self) -> bool:
        """True when the parser found a usable product title."""
        return bool(self.title)


NOT_PARSEABLE = PriceSnapshot()
