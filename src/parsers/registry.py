# src/parsers/registry.py

"""Marketplace id to parser resolution."""

import importlib
import logging
import threading
from typing import Any

from src.config.settings import Settings
from src.parsers.base_parser import BaseParser

logger = logging.getLogger("price_watch.parsers.registry")


def _load_parser_class(dotted_path: str) -> type[Any]:
    """Dynamically import a parser class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class ParserRegistry:
    """Resolves marketplace ids to parser instances.

    Parsers are built lazily on first use and reused for the lifetime of
    the registry, so one cycle shares one HTTP session per marketplace.
    """

    def __init__(
        self,
        marketplaces: list[dict[str, str]] | None = None,
    ) -> None:
        entries = (
            marketplaces
            if marketplaces is not None
            else Settings.AVAILABLE_MARKETPLACES
        )
        self._paths: dict[str, str] = {
            m["id"].lower(): m["parser"] for m in entries
        }
        self._instances: dict[str, BaseParser | None] = {}
        self._lock = threading.Lock()

    @property
    def marketplace_ids(self) -> list[str]:
        """Registered marketplace ids, sorted."""
        return sorted(self._paths)

    def resolve(self, marketplace_id: str) -> BaseParser | None:
        """Return the parser for *marketplace_id*, or ``None``.

        Safe to call from worker threads; each marketplace's parser is
        built at most once.
        """
        key = marketplace_id.strip().lower()
        dotted_path = self._paths.get(key)
        if dotted_path is None:
            return None

        with self._lock:
            if key in self._instances:
                return self._instances[key]

            parser: BaseParser | None
            try:
                parser = _load_parser_class(dotted_path)()
            except Exception as exc:
                logger.error(
                    "Failed to load parser %s for '%s': %s",
                    dotted_path,
                    key,
                    exc,
                    exc_info=True,
                )
                parser = None
            self._instances[key] = parser
            return parser
