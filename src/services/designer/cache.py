"""Session-scoped caches for reference data and per-code assets."""

from typing import Awaitable, Callable, Dict, Generic, Hashable, List, Optional, TypeVar

from loguru import logger as log

from src.services.designer.models import (
    Design,
    FontCatalogEntry,
    PaletteEntry,
    Template,
)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SessionCache(Generic[K, V]):
    """
    Key -> value cache that is filled at most once per key.

    There is no invalidation: a value lives as long as the session. A loader
    that returns None (failed fetch) leaves the key empty so a later call can
    try again.
    """

    def __init__(self, name: str):
        self.name = name
        self._values: Dict[K, V] = {}

    def __contains__(self, key: K) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: K) -> Optional[V]:
        return self._values.get(key)

    def set(self, key: K, value: V) -> V:
        if key in self._values:
            return self._values[key]
        self._values[key] = value
        return value

    async def get_or_load(
        self, key: K, loader: Callable[[], Awaitable[Optional[V]]]
    ) -> Optional[V]:
        if key in self._values:
            return self._values[key]
        value = await loader()
        if value is None:
            log.debug(f"{self.name} cache: nothing loaded for {key!r}")
            return None
        return self.set(key, value)


class CatalogCache:
    """Read-only reference catalogs for one designer session."""

    FONTS = "fonts"
    COLOURS = "colours"
    TEMPLATES = "templates"
    DESIGNS = "designs"

    def __init__(self):
        self._cache: SessionCache[str, list] = SessionCache("catalog")

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def store(self, key: str, values: list) -> list:
        return self._cache.set(key, values)

    async def get_or_load(
        self, key: str, loader: Callable[[], Awaitable[Optional[list]]]
    ) -> Optional[list]:
        return await self._cache.get_or_load(key, loader)

    @property
    def fonts(self) -> List[FontCatalogEntry]:
        return self._cache.get(self.FONTS) or []

    @property
    def colours(self) -> List[PaletteEntry]:
        return self._cache.get(self.COLOURS) or []

    @property
    def templates(self) -> List[Template]:
        return self._cache.get(self.TEMPLATES) or []

    @property
    def designs(self) -> List[Design]:
        return self._cache.get(self.DESIGNS) or []
