# storefront/services/favorites.py

import asyncio
import logging
from typing import FrozenSet

from storefront.services.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class FavoritesStore:
    """Набор id избранных товаров, сохраняемый в снимок после каждого переключения."""

    def __init__(self, snapshot: SnapshotStore):
        self.snapshot = snapshot
        self._items: FrozenSet[str] = frozenset()
        self._lock = asyncio.Lock()

    async def load(self) -> FrozenSet[str]:
        self._items = frozenset(await self.snapshot.load_favorites())
        logger.info(f"Loaded {len(self._items)} favorites from local snapshot.")
        return self._items

    @property
    def items(self) -> FrozenSet[str]:
        return self._items

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    async def toggle(self, product_id: str) -> bool:
        """
        Есть -> убрать, нет -> добавить. Новое состояние сначала пишется в
        снимок и только потом становится видимым. Возвращает True, если товар
        теперь в избранном.
        """
        async with self._lock:
            updated = self._items ^ {product_id}
            await self.snapshot.save_favorites(set(updated))
            self._items = updated
        return product_id in updated
