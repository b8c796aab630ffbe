# src/config/settings.py

"""Central configuration for the price_watch service."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price_watch service."""

    # --- Fetching ---
    FETCH_TIMEOUT: int = 20             # Seconds before a fetch is abandoned
    MAX_WORKERS: int = 8                # Concurrent product fetches per cycle
    ANTI_BOT_MARKERS: list[str] = [
        "captcha",
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "antibot",
        "доступ ограничен",
    ]

    # --- Scheduling ---
    CYCLE_INTERVAL: float = 3600.0      # Seconds between cycles in watch mode

    # --- Notifications ---
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_API_URL: str = "https://api.telegram.org"
    CURRENCY_SYMBOL: str = "₽"

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
    PRICE_DB_PATH: Path = Path(
        os.getenv(
            "PRICE_WATCH_DB_PATH",
            str(BASE_DIR / "data" / "price_watch.db"),
        )
    )

    # --- Marketplaces (parser registry) ---
    AVAILABLE_MARKETPLACES: list[dict[str, str]] = [
        {
            "id": "wildberries",
            "label": "Wildberries",
            "parser": "src.parsers.wildberries_parser.WildberriesParser",
        },
        {
            "id": "ozon",
            "label": "Ozon",
            "parser": "src.parsers.ozon_parser.OzonParser",
        },
    ]
