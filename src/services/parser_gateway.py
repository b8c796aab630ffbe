# src/services/parser_gateway.py

"""Single entry point from the reconciliation job to marketplace parsers."""

import logging

from src.models.price_snapshot import PriceSnapshot
from src.parsers.registry import ParserRegistry

logger = logging.getLogger("price_watch.gateway")


class ParserGateway:
    """Resolves a marketplace id to a parser and runs it for one link.

    ``fetch`` returns ``None`` whenever there is nothing usable to compare:
    no parser registered, no title on the page, or any failure underneath.
    """

    def __init__(self, registry: ParserRegistry | None = None) -> None:
        self.registry = registry or ParserRegistry()

    def fetch(
        self, marketplace_id: str, link: str,
    ) -> PriceSnapshot | None:
        """Return a parsed snapshot for *link*, or ``None``."""
        parser = self.registry.resolve(marketplace_id)
        if parser is None:
            logger.debug(
                "No parser registered for marketplace '%s'",
                marketplace_id,
            )
            return None

        try:
            snapshot = parser.fetch(link)
        except Exception as exc:
            logger.warning(
                "Parser for '%s' raised on %s: %s",
                marketplace_id,
                link,
                exc,
                exc_info=True,
            )
            return None

        return snapshot if snapshot.is_parsed else None
