# storefront/services/snapshot.py

"""
Локальный снимок состояния: последний известный пользователь и избранное.

Два независимых ключа, каждый пишется целиком за одну операцию. Отсутствие
ключа означает "нет сохраненного значения", а нечитаемый блоб считается
отсутствующим - загрузка снимка никогда не падает. Корзина сюда намеренно
не попадает.

Третий ключ - токен удаленной сессии. Его читает и пишет только
RemoteSessionGateway, чтобы сессия переживала перезагрузку.
"""

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Optional, Set

import aiofiles
import aiofiles.os
from pydantic import ValidationError
from redis.asyncio import Redis

from storefront.core.config import settings
from storefront.schemas.user import Identity, Session

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Базовый класс: сериализация поверх сырого key/value бэкенда."""

    def __init__(
        self,
        identity_key: str = settings.SNAPSHOT_IDENTITY_KEY,
        favorites_key: str = settings.SNAPSHOT_FAVORITES_KEY,
        session_key: str = settings.SNAPSHOT_SESSION_KEY,
    ):
        self.identity_key = identity_key
        self.favorites_key = favorites_key
        self.session_key = session_key
        self._locks: dict[str, asyncio.Lock] = {}

    # --- сырой бэкенд ---
    async def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def _remove(self, key: str) -> None:
        raise NotImplementedError

    def _lock(self, key: str) -> asyncio.Lock:
        # Записи одного ключа выполняются строго по очереди
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def _put(self, key: str, value: str) -> None:
        async with self._lock(key):
            await self._write(key, value)

    async def _delete(self, key: str) -> None:
        async with self._lock(key):
            await self._remove(key)

    # --- identity ---
    async def load_identity(self) -> Optional[Identity]:
        raw = await self._read(self.identity_key)
        if raw is None:
            return None
        try:
            return Identity.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Discarding unreadable identity snapshot under key '{self.identity_key}'.", exc_info=True)
            return None

    async def save_identity(self, identity: Identity) -> None:
        await self._put(self.identity_key, identity.model_dump_json())

    async def clear_identity(self) -> None:
        await self._delete(self.identity_key)

    # --- избранное ---
    async def load_favorites(self) -> Set[str]:
        raw = await self._read(self.favorites_key)
        if raw is None:
            return set()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable favorites snapshot under key '{self.favorites_key}'.")
            return set()
        if not isinstance(data, list):
            logger.warning(f"Favorites snapshot under key '{self.favorites_key}' is not a list. Ignoring it.")
            return set()
        return {str(item) for item in data}

    async def save_favorites(self, favorites: Set[str]) -> None:
        # Сортируем, чтобы блоб был детерминированным
        await self._put(self.favorites_key, json.dumps(sorted(favorites), ensure_ascii=False))

    # --- удаленная сессия ---
    async def load_session(self) -> Optional[Session]:
        raw = await self._read(self.session_key)
        if raw is None:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Discarding unreadable session snapshot under key '{self.session_key}'.")
            return None

    async def save_session(self, session: Session) -> None:
        await self._put(self.session_key, session.model_dump_json())

    async def clear_session(self) -> None:
        await self._delete(self.session_key)


class FileSnapshotStore(SnapshotStore):
    """
    По одному JSON-файлу на ключ. Запись идет во временный файл и затем
    атомарно подменяет основной через os.replace, так что перезагрузка
    никогда не увидит наполовину записанный блоб.
    """

    def __init__(self, directory: str | Path = settings.SNAPSHOT_DIR, **kwargs):
        super().__init__(**kwargs)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()

    async def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.directory / f".{key}.{uuid.uuid4().hex}.tmp"
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(value)
                await f.flush()
            await aiofiles.os.replace(tmp_path, self._path(key))
        except OSError:
            logger.error(f"Failed to persist snapshot key '{key}' to '{self.directory}'.", exc_info=True)
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.remove(tmp_path)
            raise

    async def _remove(self, key: str) -> None:
        path = self._path(key)
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)


class RedisSnapshotStore(SnapshotStore):
    """Каждый блоб - отдельный строковый ключ в Redis (SET атомарен)."""

    def __init__(self, redis: Redis, namespace: str = "snapshot", **kwargs):
        super().__init__(**kwargs)
        self.redis = redis
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def _read(self, key: str) -> Optional[str]:
        return await self.redis.get(self._key(key))

    async def _write(self, key: str, value: str) -> None:
        await self.redis.set(self._key(key), value)

    async def _remove(self, key: str) -> None:
        await self.redis.delete(self._key(key))


class MemorySnapshotStore(SnapshotStore):
    """Хранилище в памяти для разработки и тестов: переживает только сам процесс."""

    def __init__(self, initial: dict[str, str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.data: dict[str, str] = dict(initial or {})

    async def _read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def _write(self, key: str, value: str) -> None:
        self.data[key] = value

    async def _remove(self, key: str) -> None:
        self.data.pop(key, None)


def build_snapshot_store(backend: str = settings.SNAPSHOT_BACKEND, redis: Redis | None = None) -> SnapshotStore:
    if backend == "redis":
        if redis is None:
            raise ValueError("Redis snapshot backend requires a Redis client.")
        return RedisSnapshotStore(redis)
    if backend == "memory":
        return MemorySnapshotStore()
    return FileSnapshotStore(settings.SNAPSHOT_DIR)
