"""Best-effort lookup of an image reference for a todo title."""
from typing import Optional, Protocol
import logging

logger = logging.getLogger(__name__)

class ImageEnricher(Protocol):
    def lookup(self, title: str) -> Optional[str]:
        ...

class NullEnricher:
    def lookup(self, title: str) -> Optional[str]:
        return None

def safe_lookup(enricher: ImageEnricher, title: str) -> Optional[str]:
    """Never raises: a failed lookup just means no image."""
    try:
        return enricher.lookup(title)
    except Exception as e:
        logger.warning("Image lookup failed for %r: %s", title, e)
        return None
