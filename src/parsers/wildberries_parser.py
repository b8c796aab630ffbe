# src/parsers/wildberries_parser.py

"""Parser for wildberries.ru using the public product card API."""

import json
import re
from typing import Any

from src.models.price_snapshot import NOT_PARSEABLE, PriceSnapshot
from src.parsers.base_parser import BaseParser

_ARTICLE_RE = re.compile(r"/catalog/(\d+)")


class WildberriesParser(BaseParser):
    """Parser for wildberries.ru via the card detail JSON API.

    Product pages are rendered client-side, but the storefront reads
    name and prices from ``card.wb.ru``.  Prices there are in kopecks.
    """

    CARD_API = (
        "https://card.wb.ru/cards/v2/detail"
        "?appType=1&curr=rub&dest=-1257786&nm={article}"
    )

    def __init__(self) -> None:
        super().__init__("wildberries")

    def _get_homepage(self) -> str:
        """Return the Wildberries homepage URL."""
        return "https://www.wildberries.ru/"

    @staticmethod
    def article_from_link(link: str) -> str | None:
        """Pull the numeric article id out of a product link.

        Accepts full catalog links and bare article numbers.
        """
        stripped = link.strip()
        if stripped.isdigit():
            return stripped
        match = _ARTICLE_RE.search(stripped)
        return match.group(1) if match else None

    @staticmethod
    def _kopecks(value: Any) -> float | None:
        if value is None:
            return None
        return int(value) / 100

    @classmethod
    def _parse_card(cls, data: dict[str, Any]) -> PriceSnapshot:
        """Turn a card API payload into a snapshot."""
        products: list[dict[str, Any]] = (
            data.get("data", {}).get("products", [])
        )
        if not products:
            return NOT_PARSEABLE
        product = products[0]

        price_info: dict[str, Any] = {}
        for size in product.get("sizes", []):
            if size.get("price"):
                price_info = size["price"]
                break

        title = product.get("name")
        brand = product.get("brand")
        if title and brand:
            title = f"{brand} / {title}"
        return PriceSnapshot(
            title=title,
            price=cls._kopecks(price_info.get("basic")),
            card_price=cls._kopecks(price_info.get("product")),
        )

    def parse(self, link: str) -> PriceSnapshot:
        """Look up the article behind *link* on the card API."""
        article = self.article_from_link(link)
        if article is None:
            self.logger.warning(
                "[wildberries] No article id in link %s", link
            )
            return NOT_PARSEABLE

        resp = self._fetch_get(
            self.CARD_API.format(article=article),
            {"Accept": "application/json", "Referer": link},
        )
        if not resp:
            return NOT_PARSEABLE

        data: dict[str, Any] = json.loads(resp.text)
        return self._parse_card(data)
