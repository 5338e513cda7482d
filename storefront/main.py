# storefront/main.py

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from storefront.clients.remote_store import RemoteStoreClient, remote_client
from storefront.core.config import settings
from storefront.core.logging_config import setup_logging
from storefront.core.redis import redis_client
from storefront.exceptions import StorefrontError
from storefront.services.snapshot import SnapshotStore, build_snapshot_store
from storefront.state import AppState, build_app_state

# --- Инициализация ---
logger = logging.getLogger(__name__)


async def _load_inventory(state: AppState):
    try:
        await state.inventory.refresh()
    except StorefrontError as e:
        # Каталог без сети пуст, но приложение продолжает работать
        logger.warning(f"Initial inventory load failed: {e.error_code}.")


# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def app_lifespan(
    client: Optional[RemoteStoreClient] = None,
    snapshot: Optional[SnapshotStore] = None,
    configure_logging: bool = True,
) -> AsyncIterator[AppState]:
    """
    Порядок старта:
    1. избранное и пользователь из локального снимка (без сети);
    2. фоновая проверка удаленной сессии с таймаутом;
    3. каталог и конфиг сайта загружаются параллельно с ней.
    """
    if configure_logging:
        setup_logging()
    logger.info("Storefront startup...")

    client = client or remote_client
    uses_redis = snapshot is None and settings.SNAPSHOT_BACKEND == "redis"
    snapshot = snapshot or build_snapshot_store(settings.SNAPSHOT_BACKEND, redis=redis_client if uses_redis else None)
    state = build_app_state(client, snapshot, redis=redis_client if uses_redis else None)

    await state.favorites.load()
    await state.session.start()
    await asyncio.gather(_load_inventory(state), state.site_config.load())
    logger.info(f"Storefront ready: state={state.session.state.value}, products={len(state.inventory.products)}.")

    try:
        yield state
    finally:
        logger.info("Storefront shutting down...")
        await state.session.stop()
        await client.aclose()
        if uses_redis:
            await redis_client.aclose()
