# tests/test_base_parser.py

"""Tests for BaseParser fetching and failure collapsing."""

import unittest
from unittest.mock import MagicMock, patch

from curl_cffi import requests as curl_requests

from src.models.price_snapshot import NOT_PARSEABLE, PriceSnapshot
from src.parsers.base_parser import BaseParser


class _StubParser(BaseParser):
    """Concrete parser returning a configurable snapshot."""

    def __init__(self, result: PriceSnapshot | Exception) -> None:
        super().__init__("stub")
        self.result = result

    def _get_homepage(self) -> str:
        return "https://example.com"

    def parse(self, link: str) -> PriceSnapshot:
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def fetch_get(
        self, url: str, headers: dict[str, str] | None = None,
    ) -> curl_requests.Response | None:
        """Public wrapper for _fetch_get."""
        return self._fetch_get(url, headers)


def _resp(status: int, text: str) -> MagicMock:
    """Build a fake HTTP response."""
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


class TestFetchCollapsing(unittest.TestCase):
    """fetch() never raises and hides partial results."""

    def test_parsed_snapshot_passes_through(self) -> None:
        """A titled snapshot is returned unchanged."""
        snap = PriceSnapshot("Kettle", 1999.0, 1799.0)
        self.assertEqual(_StubParser(snap).fetch("x"), snap)

    def test_untitled_snapshot_becomes_not_parseable(self) -> None:
        """Prices without a title are discarded."""
        parser = _StubParser(PriceSnapshot(None, 10.0, 9.0))
        self.assertIs(parser.fetch("x"), NOT_PARSEABLE)

    def test_exception_becomes_not_parseable(self) -> None:
        """Markup drift raising KeyError is swallowed."""
        parser = _StubParser(KeyError("products"))
        with self.assertLogs("price_watch.parsers.stub", level="ERROR"):
            self.assertIs(parser.fetch("x"), NOT_PARSEABLE)


class TestFetchGet(unittest.TestCase):
    """Single-attempt GET behaviour."""

    def setUp(self) -> None:
        """Stub parser with a mocked session."""
        self.parser = _StubParser(NOT_PARSEABLE)
        self.parser.session = MagicMock()

    def test_ok_response_returned(self) -> None:
        """HTTP 200 with a JSON body is accepted."""
        self.parser.session.get.return_value = _resp(200, '{"ok": 1}')
        self.assertIsNotNone(self.parser.fetch_get("https://e.com"))

    def test_single_attempt_on_http_error(self) -> None:
        """Non-200 returns None without retrying."""
        self.parser.session.get.return_value = _resp(503, "")
        self.assertIsNone(self.parser.fetch_get("https://e.com"))
        self.assertEqual(self.parser.session.get.call_count, 1)

    def test_timeout_returns_none(self) -> None:
        """A transport exception is logged and returns None."""
        self.parser.session.get.side_effect = TimeoutError("slow")
        self.assertIsNone(self.parser.fetch_get("https://e.com"))

    def test_anti_bot_page_rejected(self) -> None:
        """A 200 captcha interstitial counts as a failure."""
        self.parser.session.get.return_value = _resp(
            200, "<html><body>Please solve the CAPTCHA</body></html>"
        )
        self.assertIsNone(self.parser.fetch_get("https://e.com"))

    def test_timeout_and_headers_forwarded(self) -> None:
        """The configured timeout and merged headers reach the session."""
        self.parser.session.get.return_value = _resp(200, "[]")
        self.parser.fetch_get("https://e.com", {"Referer": "r"})
        kwargs = self.parser.session.get.call_args.kwargs
        self.assertEqual(kwargs["timeout"], self.parser.settings.FETCH_TIMEOUT)
        self.assertEqual(kwargs["headers"]["Referer"], "r")
        self.assertIn("Accept-Language", kwargs["headers"])


class TestGetPageFallback(unittest.TestCase):
    """cloudscraper fallback for HTML pages."""

    @patch("src.parsers.base_parser.cloudscraper")
    def test_fallback_used_when_primary_fails(
        self, mock_cs: MagicMock,
    ) -> None:
        """A blocked primary fetch falls back to cloudscraper."""
        parser = _StubParser(NOT_PARSEABLE)
        parser.session = MagicMock()
        parser.session.get.return_value = _resp(403, "")
        mock_cs.create_scraper.return_value.get.return_value = _resp(
            200, "<html><h1>ok</h1></html>"
        )
        soup = parser._get_page("https://e.com/p")
        assert soup is not None
        self.assertEqual(soup.h1.get_text(), "ok")

    @patch("src.parsers.base_parser.cloudscraper")
    def test_both_fail_returns_none(self, mock_cs: MagicMock) -> None:
        """Primary and fallback failures give None."""
        parser = _StubParser(NOT_PARSEABLE)
        parser.session = MagicMock()
        parser.session.get.side_effect = ConnectionError("down")
        mock_cs.create_scraper.return_value.get.side_effect = (
            ConnectionError("down")
        )
        self.assertIsNone(parser._get_page("https://e.com/p"))


class TestExtractPrice(unittest.TestCase):
    """Price string parsing."""

    def test_thin_space_thousands(self) -> None:
        """'1 299 ₽' with a thin space parses to 1299."""
        self.assertEqual(BaseParser.extract_price("1 299 ₽"), 1299.0)

    def test_nbsp_and_decimal_comma(self) -> None:
        """Non-breaking space groups, comma is the decimal mark."""
        self.assertEqual(
            BaseParser.extract_price("12 345,50 ₽"), 12345.5
        )

    def test_plain_number(self) -> None:
        """A bare number parses as-is."""
        self.assertEqual(BaseParser.extract_price("499"), 499.0)

    def test_no_digits_is_none(self) -> None:
        """Text with no digits is a missing price, not zero."""
        self.assertIsNone(BaseParser.extract_price("нет в наличии"))
        self.assertIsNone(BaseParser.extract_price(""))
        self.assertIsNone(BaseParser.extract_price(None))


if __name__ == "__main__":
    unittest.main()
