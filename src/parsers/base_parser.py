# src/parsers/base_parser.py

"""Abstract base class for all marketplace price parsers."""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.price_snapshot import NOT_PARSEABLE, PriceSnapshot


class BaseParser(ABC):
    """Abstract base class for all marketplace price parsers.

    A parser makes exactly one attempt per product per cycle.  Anything
    that goes wrong on the way (timeout, HTTP error, anti-bot page, markup
    drift) ends in :data:`NOT_PARSEABLE` instead of an exception.
    """

    def __init__(self, marketplace: str) -> None:
        self.marketplace = marketplace
        self.logger = logging.getLogger(
            f"price_watch.parsers.{marketplace}"
        )
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.FETCH_TIMEOUT

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this marketplace from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(
            self.marketplace, {}
        )
        return result

    def _validate_response(
        self, resp: curl_requests.Response,
    ) -> bool:
        """Reject anti-bot interstitials served with a 200 status."""
        text = resp.text
        if text.lstrip().startswith(("{", "[")):
            return True
        lower = text.lower()
        for marker in self.settings.ANTI_BOT_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Anti-bot page detected (marker: '%s')",
                    self.marketplace,
                    marker,
                )
                return False
        return True

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> curl_requests.Response | None:
        """Single GET attempt; ``None`` on any failure."""
        merged = {**self.settings.DEFAULT_HEADERS, **(headers or {})}
        try:
            resp = self.session.get(
                url,
                headers=merged,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error for %s: %s",
                self.marketplace,
                url,
                exc,
                exc_info=True,
            )
            return None
        if resp.status_code != 200:
            self.logger.warning(
                "[%s] HTTP %d for %s",
                self.marketplace,
                resp.status_code,
                url,
            )
            return None
        if not self._validate_response(resp):
            return None
        return resp

    def _get_page(self, url: str) -> BeautifulSoup | None:
        """Fetch an HTML page, falling back to cloudscraper on failure."""
        headers = {"Referer": self._get_homepage()}

        # Primary: curl_cffi (browser-impersonating TLS)
        resp = self._fetch_get(url, headers)
        if resp:
            return BeautifulSoup(resp.text, "lxml")

        # Fallback: cloudscraper (JS challenge solver)
        self.logger.info(
            "[%s] curl_cffi failed, falling back to cloudscraper",
            self.marketplace,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url,
                headers={**self.settings.DEFAULT_HEADERS, **headers},
                timeout=self._request_timeout,
            )
            if fallback_resp.status_code == 200:
                return BeautifulSoup(
                    str(fallback_resp.text), "lxml"
                )
        except Exception as e:
            self.logger.error(
                "[%s] cloudscraper fallback also failed: %s",
                self.marketplace,
                e,
                exc_info=True,
            )

        return None

    @staticmethod
    def extract_price(text: str | None) -> float | None:
        """Extract a numeric price from a string like '1 299,50 ₽'.

        Returns ``None`` when the text carries no digits, so that a
        missing price stays distinguishable from a zero price.
        """
        if not text:
            return None
        # Unicode \s covers the thin and non-breaking spaces used
        # as thousands separators; the comma is the decimal mark
        cleaned = re.sub(r"\s", "", text)
        cleaned = cleaned.replace(",", ".")
        numbers = re.findall(r"\d+(?:\.\d+)?", cleaned)
        return float(numbers[0]) if numbers else None

    def fetch(self, link: str) -> PriceSnapshot:
        """Parse *link*, collapsing every failure into NOT_PARSEABLE."""
        try:
            snapshot = self.parse(link)
        except Exception as e:
            self.logger.error(
                "[%s] Parse failed for %s: %s",
                self.marketplace,
                link,
                e,
                exc_info=True,
            )
            return NOT_PARSEABLE
        if not snapshot.is_parsed:
            self.logger.debug(
                "[%s] No title found for %s", self.marketplace, link,
            )
            return NOT_PARSEABLE
        return snapshot

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def parse(self, link: str) -> PriceSnapshot:
        """Fetch the product page behind *link* and read its prices."""
        ...
