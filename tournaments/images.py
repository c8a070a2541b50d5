"""Contestant image lookup boundary."""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class ImageProvider(ABC):
    """Supplies image URLs for a contestant shown in the current match."""

    @abstractmethod
    async def fetch_images(self, contestant_id: int, name: str) -> list[str]:
        pass


class NoImageProvider(ImageProvider):
    """Provider used when no image source is configured."""

    async def fetch_images(self, contestant_id: int, name: str) -> list[str]:
        return []


class StaticImageProvider(ImageProvider):
    """Serves fixed URL lists keyed by contestant id or name."""

    def __init__(self, images: dict[str, list[str]] | None = None):
        self.images = images or {}

    async def fetch_images(self, contestant_id: int, name: str) -> list[str]:
        urls = self.images.get(str(contestant_id)) or self.images.get(name)
        if urls is None:
            logger.debug(f"No images configured for {name} ({contestant_id})")
            return []
        return list(urls)
