# storefront/services/session.py

"""
Согласование сессии при старте и в течение жизни приложения.

Состояния: BOOTSTRAPPING -> PROVISIONAL_READY -> RECONCILED, плюс SIGNED_OUT,
достижимое из любого состояния.

1. start() читает локальный снимок. Если там есть пользователь, он сразу
   публикуется как предварительный (PROVISIONAL_READY) - интерфейс не ждет сети.
   Сохраненный токен удаленной сессии возвращается в клиент там же, без сети.
2. Параллельно идет проверка удаленной сессии, ограниченная таймаутом.
   Успех -> RECONCILED и перезапись снимка. Таймаут/сбой -> остаемся на
   предварительном пользователе (local-first) или, если снимка не было,
   уходим в SIGNED_OUT (неаутентифицирован).
3. События шлюза (вход/обновление/выход) идут через тот же путь и всегда
   авторитетны. Выход безусловно очищает пользователя, снимок и корзину.

Каждый удаленный результат помечен эпохой, в которой был запрошен. Любое
новое событие увеличивает эпоху, и опоздавшие результаты старых эпох
отбрасываются, поэтому медленная стартовая проверка не может "воскресить"
пользователя после выхода.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from storefront.core.config import settings
from storefront.exceptions import StorefrontError
from storefront.schemas.user import AuthEvent, Identity, Session
from storefront.services.auth import RemoteSessionGateway
from storefront.services.cart import CartStore
from storefront.services.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    BOOTSTRAPPING = "BOOTSTRAPPING"
    PROVISIONAL_READY = "PROVISIONAL_READY"
    RECONCILED = "RECONCILED"
    SIGNED_OUT = "SIGNED_OUT"


class IdentityChangeKind(str, Enum):
    SIGNED_IN = "SIGNED_IN"    # отсутствовал -> появился
    UPDATED = "UPDATED"        # был -> обновился (в т.ч. тот же профиль повторно)
    SIGNED_OUT = "SIGNED_OUT"  # был -> отсутствует


@dataclass(frozen=True)
class IdentityChange:
    kind: IdentityChangeKind
    previous: Optional[Identity]
    current: Optional[Identity]


IdentityListener = Callable[[IdentityChange], None]


class SessionReconciler:
    """Единственный владелец текущего пользователя. Остальные только читают."""

    def __init__(
        self,
        gateway: RemoteSessionGateway,
        snapshot: SnapshotStore,
        cart: CartStore,
        timeout: float = settings.SESSION_CHECK_TIMEOUT_SECONDS,
    ):
        self.gateway = gateway
        self.snapshot = snapshot
        self.cart = cart
        self.timeout = timeout

        self.state = SessionState.BOOTSTRAPPING
        self.ready = asyncio.Event()
        self._identity: Optional[Identity] = None
        self._epoch = 0
        self._listeners: List[IdentityListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._startup_task: Optional[asyncio.Task] = None

    # --- чтение ---

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def epoch(self) -> int:
        return self._epoch

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- жизненный цикл ---

    async def start(self) -> None:
        """
        Фаза снимка выполняется до любого удаленного вызова. Удаленная проверка
        запускается фоном; дождаться ее можно через wait_settled().
        """
        if self.state is not SessionState.BOOTSTRAPPING or self._startup_task is not None:
            logger.warning("SessionReconciler.start() called twice. Ignoring.")
            return

        saved = await self.snapshot.load_identity()
        if saved is not None:
            logger.info(f"Restored provisional identity {saved.id} from local snapshot.")
            self._publish(saved)
            self._transition(SessionState.PROVISIONAL_READY)

        # Сохраненный токен сессии возвращается в клиент до удаленной проверки
        try:
            await self.gateway.restore_session()
        except Exception:
            logger.error("Failed to restore saved remote session token.", exc_info=True)

        # Подписка оформляется сразу, чтобы не потерять событие, пришедшее во время проверки
        self._unsubscribe = self.gateway.subscribe(self.on_remote_event)
        self._startup_task = asyncio.create_task(self._startup_check(self._epoch))

    async def wait_settled(self) -> None:
        """Ждет завершения стартовой проверки (успех, таймаут или сбой)."""
        if self._startup_task is not None:
            await asyncio.shield(self._startup_task)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()
            try:
                await self._startup_task
            except asyncio.CancelledError:
                pass

    async def _startup_check(self, epoch: int) -> None:
        try:
            identity = await asyncio.wait_for(self._fetch_remote_identity(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Remote session check timed out after {self.timeout}s.")
            self._settle_without_remote()
            return
        except StorefrontError as e:
            logger.warning(f"Remote session check failed: {e.error_code}. Keeping local state.")
            self._settle_without_remote()
            return
        except Exception:
            logger.error("Unexpected error during remote session check. Keeping local state.", exc_info=True)
            self._settle_without_remote()
            return

        if epoch != self._epoch:
            # Пока шла проверка, пришло авторитетное событие - результат устарел
            logger.info(f"Discarding stale startup check result (epoch {epoch}, current {self._epoch}).")
            # Событие могло само упасть и ничего не опубликовать - загрузка все равно должна завершиться
            self._settle_without_remote()
            return

        if identity is None:
            logger.info("No remote session established at startup.")
            self._settle_without_remote()
            return

        self._publish(identity)
        self._transition(SessionState.RECONCILED)
        await self._persist_identity(identity)

    async def _fetch_remote_identity(self) -> Optional[Identity]:
        session = await self.gateway.get_current_session()
        if session is None:
            return None
        return await self.gateway.fetch_profile(session.user_id)

    def _settle_without_remote(self) -> None:
        if self.state is SessionState.BOOTSTRAPPING:
            if self._identity is not None:
                self._transition(SessionState.PROVISIONAL_READY)
            else:
                self._transition(SessionState.SIGNED_OUT)
        # В PROVISIONAL_READY ничего не делаем: локальный пользователь не выкидывается из-за сети

    # --- события удаленной аутентификации ---

    async def on_remote_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        if event is AuthEvent.SIGNED_OUT:
            await self._sign_out()
            return

        if event in (AuthEvent.SIGNED_IN, AuthEvent.USER_UPDATED):
            if session is None:
                logger.warning(f"Auth event {event.value} without a session. Ignoring.")
                return
            epoch = self._next_epoch()
            try:
                identity = await self.gateway.fetch_profile(session.user_id)
            except StorefrontError as e:
                logger.warning(f"Profile fetch for user {session.user_id} failed after {event.value}: {e.error_code}.")
                return

            if epoch != self._epoch:
                logger.info(f"Discarding stale profile for user {session.user_id} (epoch {epoch}, current {self._epoch}).")
                return
            if identity is None:
                logger.warning(f"No profile row for user {session.user_id}. Identity left unchanged.")
                return

            self._publish(identity)
            self._transition(SessionState.RECONCILED)
            await self._persist_identity(identity)

    async def _sign_out(self) -> None:
        self._next_epoch()
        previous = self._identity
        self._identity = None
        self.cart.clear()
        self._transition(SessionState.SIGNED_OUT)
        if previous is not None:
            self._notify(IdentityChange(IdentityChangeKind.SIGNED_OUT, previous, None))
        try:
            await self.snapshot.clear_identity()
        except Exception:
            logger.error("Failed to clear identity snapshot on sign-out.", exc_info=True)
        logger.info("Signed out: identity, snapshot and cart cleared.")

    async def accept_profile(self, profile: Identity) -> bool:
        """
        Принимает свежую строку профиля из админских правок (например, баллы).
        Применяется только если это текущий пользователь.
        """
        if self._identity is None or self._identity.id != profile.id:
            return False
        self._next_epoch()
        identity = Identity.model_validate(profile.model_dump())
        self._publish(identity)
        await self._persist_identity(identity)
        return True

    # --- внутреннее ---

    def _next_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    def _transition(self, state: SessionState) -> None:
        if state is not self.state:
            logger.info(f"Session state {self.state.value} -> {state.value}.")
            self.state = state
        if state is not SessionState.BOOTSTRAPPING:
            self.ready.set()

    def _publish(self, identity: Identity) -> None:
        previous = self._identity
        self._identity = identity
        kind = IdentityChangeKind.SIGNED_IN if previous is None else IdentityChangeKind.UPDATED
        self._notify(IdentityChange(kind, previous, identity))

    def _notify(self, change: IdentityChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.error(f"Identity listener failed on {change.kind.value}.", exc_info=True)

    async def _persist_identity(self, identity: Identity) -> None:
        try:
            await self.snapshot.save_identity(identity)
        except Exception:
            logger.error(f"Failed to persist identity snapshot for user {identity.id}.", exc_info=True)
