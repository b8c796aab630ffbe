# src/models/product.py

"""Tracked product and subscriber models loaded for a reconciliation cycle."""

from dataclasses import dataclass, field

from src.models.price_record import EMPTY_RECORD, PriceRecord


@dataclass
class Product:
    """A product one user asked to track on one marketplace.

    ``prices`` is ordered oldest first.  During a cycle it holds at most
    the latest stored record.
    """

    id: int
    user_id: int
    marketplace: str
    link: str
    prices: list[PriceRecord] = field(
        default_factory=lambda: list[PriceRecord]()
    )

    @property
    def last_price(self) -> PriceRecord:
        """Most recent record, or a zero record for untouched products."""
        return self.prices[-1] if self.prices else EMPTY_RECORD


@dataclass
class User:
    """A subscriber and the products they track."""

    id: int
    chat_id: str
    products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )


@dataclass(frozen=True)
class WorkItem:
    """One (user, product, last record) unit of reconciliation work."""

    user: User
    product: Product
    last_record: PriceRecord
