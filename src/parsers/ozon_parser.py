# src/parsers/ozon_parser.py

"""Parser for ozon.ru product pages."""

import json
from typing import Any

from bs4 import BeautifulSoup

from src.models.price_snapshot import NOT_PARSEABLE, PriceSnapshot
from src.parsers.base_parser import BaseParser


class OzonParser(BaseParser):
    """Parser for ozon.ru product pages.

    The price widget shows the Ozon Card price in the large headline and
    the regular price next to it.  When the widget markup changes, the
    regular price is still available from the JSON-LD ``Product`` block.
    """

    def __init__(self) -> None:
        super().__init__("ozon")

    def _get_homepage(self) -> str:
        """Return the Ozon homepage URL."""
        return "https://www.ozon.ru/"

    def _select_text(
        self, soup: BeautifulSoup, key: str,
    ) -> str | None:
        selector = self.selectors.get(key)
        if not selector:
            return None
        el = soup.select_one(selector)
        return el.get_text(strip=True) if el else None

    def _json_ld_product(
        self, soup: BeautifulSoup,
    ) -> dict[str, Any]:
        """Return the first JSON-LD block typed as a Product."""
        selector = self.selectors.get(
            "json_ld", "script[type='application/ld+json']"
        )
        for script in soup.select(selector):
            try:
                data: Any = json.loads(script.get_text())
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict) and data.get("@type") == "Product":
                return data
        return {}

    def _parse_page(self, soup: BeautifulSoup) -> PriceSnapshot:
        """Read title and both prices from a product page."""
        ld = self._json_ld_product(soup)

        title = self._select_text(soup, "title") or ld.get("name")
        price = self.extract_price(self._select_text(soup, "price"))
        card_price = self.extract_price(
            self._select_text(soup, "card_price")
        )

        if price is None:
            offers: Any = ld.get("offers", {})
            if isinstance(offers, dict) and offers.get("price"):
                price = self.extract_price(str(offers["price"]))

        return PriceSnapshot(
            title=title,
            price=price,
            card_price=card_price,
        )

    def parse(self, link: str) -> PriceSnapshot:
        """Fetch and parse the Ozon product page at *link*."""
        soup = self._get_page(link)
        if soup is None:
            return NOT_PARSEABLE
        return self._parse_page(soup)
