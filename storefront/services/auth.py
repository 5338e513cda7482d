# storefront/services/auth.py

import logging
from typing import Awaitable, Callable, List, Optional

from storefront.clients.remote_store import RemoteStoreClient
from storefront.core import locales
from storefront.crud import user as crud_user
from storefront.crud.errors import remote_call
from storefront.exceptions import NotFound, PermissionDenied, StorefrontError, ValidationFailed
from storefront.schemas.user import AuthEvent, Identity, Session
from storefront.services.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, Optional[Session]], Awaitable[None]]


class RemoteSessionGateway:
    """
    Шлюз к удаленной аутентификации.
    - get_current_session(): проверяет текущий токен на сервере (может упасть по сети).
    - subscribe(): подписка на смену пользователя (вход/выход/обновление профиля).
    - fetch_profile(): строка профиля из таблицы users.

    Если передан snapshot, токен сессии сохраняется под отдельным ключом
    и возвращается в клиент через restore_session() после перезагрузки.
    """

    def __init__(self, client: RemoteStoreClient, snapshot: Optional[SnapshotStore] = None):
        self.client = client
        self.snapshot = snapshot
        self._listeners: List[AuthListener] = []

    # --- подписки ---

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Optional[Session]):
        logger.info(f"Auth event {event.value} (user: {session.user_id if session else None}).")
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                # Ошибка одного подписчика не должна лишать событий остальных
                logger.error(f"Auth listener failed while handling {event.value}.", exc_info=True)

    # --- сохраненная сессия ---

    async def restore_session(self) -> Optional[Session]:
        """Возвращает в клиент токен, сохраненный до перезагрузки. Сеть не трогает."""
        if self.snapshot is None or self.client.access_token:
            return None
        saved = await self.snapshot.load_session()
        if saved is not None:
            logger.info(f"Restored saved session token for user {saved.user_id}.")
            self.client.set_access_token(saved.access_token)
        return saved

    async def _forget_session(self):
        self.client.set_access_token(None)
        if self.snapshot is not None:
            try:
                await self.snapshot.clear_session()
            except Exception:
                logger.error("Failed to clear saved session token.", exc_info=True)

    # --- сессия ---

    async def get_current_session(self) -> Optional[Session]:
        """
        Возвращает подтвержденную сервером сессию или None, если токена нет
        или сервер его отверг. Сетевые сбои -> NetworkUnavailable.
        """
        token = self.client.access_token
        if not token:
            return None
        try:
            async with remote_call("get_current_session"):
                response = await self.client.get("auth/v1/user")
        except NotFound:
            return None
        except PermissionDenied:
            logger.info("Stored access token was rejected by the remote store. Dropping it.")
            await self._forget_session()
            return None
        data = response.json()
        return Session(user_id=str(data["id"]), access_token=token, email=data.get("email"))

    async def fetch_profile(self, user_id: str) -> Optional[Identity]:
        return await crud_user.get_profile(self.client, user_id)

    async def sign_in(self, email: str, password: str) -> Session:
        try:
            async with remote_call("sign_in"):
                response = await self.client.post(
                    "auth/v1/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                )
        except (ValidationFailed, PermissionDenied) as e:
            raise ValidationFailed(locales.ERROR_INVALID_CREDENTIALS) from e
        data = response.json()
        token = data["access_token"]
        user = data.get("user") or {}
        self.client.set_access_token(token)
        session = Session(user_id=str(user["id"]), access_token=token, email=user.get("email"))
        if self.snapshot is not None:
            try:
                await self.snapshot.save_session(session)
            except Exception:
                logger.error(f"Failed to save session token for user {session.user_id}.", exc_info=True)
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def refresh_user(self) -> Optional[Session]:
        """Перепроверяет сессию и сообщает подписчикам об обновлении профиля."""
        session = await self.get_current_session()
        if session:
            await self._emit(AuthEvent.USER_UPDATED, session)
        return session

    async def sign_out(self):
        """Выход всегда завершается локально, даже если сервер недоступен."""
        if self.client.access_token:
            try:
                async with remote_call("sign_out"):
                    await self.client.post("auth/v1/logout")
            except StorefrontError:
                logger.warning("Remote logout failed. Signing out locally anyway.", exc_info=True)
        await self._forget_session()
        await self._emit(AuthEvent.SIGNED_OUT, None)
