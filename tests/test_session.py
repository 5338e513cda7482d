# tests/test_session.py

import asyncio
import httpx
import pytest
import logging

from storefront.exceptions import NetworkUnavailable
from storefront.schemas.user import AuthEvent, Identity, Session
from storefront.services.auth import RemoteSessionGateway
from storefront.services.favorites import FavoritesStore
from storefront.services.session import IdentityChangeKind, SessionReconciler, SessionState

logger = logging.getLogger(__name__)

pytestmark = pytest.mark.asyncio

SESSION_U1 = Session(user_id="u1", access_token="token-u1")


async def test_provisional_identity_survives_gateway_timeout(reconciler, gateway, snapshot_store, user_u1, hang_forever):
    """Снимок {u1, избранное p7}, шлюз зависает -> пользователь остается u1, ошибок нет."""
    await snapshot_store.save_identity(user_u1)
    await snapshot_store.save_favorites({"p7"})
    gateway.get_current_session.side_effect = hang_forever
    favorites = FavoritesStore(snapshot_store)

    await favorites.load()
    await reconciler.start()

    # Предварительный пользователь виден сразу, до ответа сети
    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.PROVISIONAL_READY
    assert reconciler.ready.is_set()

    await reconciler.wait_settled()

    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.PROVISIONAL_READY
    assert "p7" in favorites
    gateway.fetch_profile.assert_not_called()
    await reconciler.stop()


async def test_network_failure_keeps_provisional_identity(reconciler, gateway, snapshot_store, user_u1):
    await snapshot_store.save_identity(user_u1)
    gateway.get_current_session.side_effect = NetworkUnavailable("down")

    await reconciler.start()
    await reconciler.wait_settled()

    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.PROVISIONAL_READY
    assert await snapshot_store.load_identity() == user_u1


async def test_no_snapshot_and_no_remote_session_is_unauthenticated(reconciler, gateway):
    gateway.get_current_session.side_effect = NetworkUnavailable("down")

    await reconciler.start()
    assert not reconciler.ready.is_set()

    await reconciler.wait_settled()

    assert reconciler.identity is None
    assert reconciler.state is SessionState.SIGNED_OUT
    assert reconciler.ready.is_set()


async def test_startup_check_reconciles_and_rewrites_snapshot(reconciler, gateway, snapshot_store, user_u1):
    await snapshot_store.save_identity(user_u1)
    fresh = user_u1.model_copy(update={"loyalty_points": 300})
    gateway.get_current_session.return_value = SESSION_U1
    gateway.fetch_profile.return_value = fresh

    changes = []
    reconciler.subscribe(changes.append)

    await reconciler.start()
    await reconciler.wait_settled()

    assert reconciler.state is SessionState.RECONCILED
    assert reconciler.identity.loyalty_points == 300
    assert (await snapshot_store.load_identity()).loyalty_points == 300
    gateway.fetch_profile.assert_awaited_once_with("u1")
    # absent -> present и present -> present - разные уведомления
    assert [c.kind for c in changes] == [IdentityChangeKind.SIGNED_IN, IdentityChangeKind.UPDATED]


async def test_remote_session_without_snapshot_signs_in(reconciler, gateway, snapshot_store, user_u1):
    gateway.get_current_session.return_value = SESSION_U1
    gateway.fetch_profile.return_value = user_u1

    await reconciler.start()
    await reconciler.wait_settled()

    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.RECONCILED
    assert await snapshot_store.load_identity() == user_u1


async def test_sign_out_wins_over_slower_startup_check(reconciler, gateway, snapshot_store, cart, inventory, make_product, user_u1):
    """Выход во время медленной стартовой проверки: ее поздний успех отбрасывается."""
    product = make_product(colors=[{"color": "Rosa", "stock": 2}])
    inventory.load([product])
    await snapshot_store.save_identity(user_u1)

    release = asyncio.Event()

    async def slow_session():
        await release.wait()
        return SESSION_U1

    gateway.get_current_session.side_effect = slow_session
    gateway.fetch_profile.return_value = user_u1
    reconciler.timeout = 5

    await reconciler.start()
    cart.add(product, "Rosa")
    assert reconciler.identity == user_u1

    await gateway._emit(AuthEvent.SIGNED_OUT, None)
    assert reconciler.identity is None
    assert cart.count == 0

    release.set()
    await reconciler.wait_settled()

    assert reconciler.identity is None
    assert reconciler.state is SessionState.SIGNED_OUT
    assert await snapshot_store.load_identity() is None
    assert cart.count == 0


async def test_signed_in_event_is_authoritative(reconciler, gateway, snapshot_store, user_u1, hang_forever):
    gateway.get_current_session.side_effect = hang_forever
    gateway.fetch_profile.return_value = user_u1
    reconciler.timeout = 5

    await reconciler.start()
    await gateway._emit(AuthEvent.SIGNED_IN, SESSION_U1)

    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.RECONCILED
    assert await snapshot_store.load_identity() == user_u1
    await reconciler.stop()


async def test_stale_profile_after_sign_out_is_discarded(reconciler, gateway, snapshot_store, user_u1):
    release = asyncio.Event()

    async def slow_profile(user_id):
        await release.wait()
        return user_u1

    gateway.fetch_profile.side_effect = slow_profile
    await reconciler.start()
    await reconciler.wait_settled()

    sign_in = asyncio.create_task(reconciler.on_remote_event(AuthEvent.SIGNED_IN, SESSION_U1))
    await asyncio.sleep(0)
    await reconciler.on_remote_event(AuthEvent.SIGNED_OUT, None)
    release.set()
    await sign_in

    assert reconciler.identity is None
    assert reconciler.state is SessionState.SIGNED_OUT
    assert await snapshot_store.load_identity() is None


async def test_user_updated_event_with_failed_profile_fetch_keeps_identity(reconciler, gateway, snapshot_store, user_u1):
    await snapshot_store.save_identity(user_u1)
    await reconciler.start()
    await reconciler.wait_settled()

    gateway.fetch_profile.side_effect = NetworkUnavailable("down")
    await gateway._emit(AuthEvent.USER_UPDATED, SESSION_U1)

    assert reconciler.identity == user_u1


async def test_signed_out_event_clears_provisional_identity_and_cart(reconciler, gateway, snapshot_store, cart, inventory, make_product, user_u1, hang_forever):
    product = make_product()
    inventory.load([product])
    await snapshot_store.save_identity(user_u1)
    gateway.get_current_session.side_effect = hang_forever

    changes = []
    reconciler.subscribe(changes.append)
    await reconciler.start()
    cart.add(product, "Único")

    await gateway._emit(AuthEvent.SIGNED_OUT, None)

    assert reconciler.identity is None
    assert cart.count == 0
    assert await snapshot_store.load_identity() is None
    assert changes[-1].kind is IdentityChangeKind.SIGNED_OUT
    assert changes[-1].previous == user_u1
    await reconciler.stop()


async def test_accept_profile_only_for_current_user(reconciler, gateway, snapshot_store, user_u1):
    await snapshot_store.save_identity(user_u1)
    await reconciler.start()
    await reconciler.wait_settled()

    other = Identity(id="u2", display_name="Beto", loyalty_points=5)
    assert await reconciler.accept_profile(other) is False
    assert reconciler.identity == user_u1

    updated = user_u1.model_copy(update={"loyalty_points": 999})
    assert await reconciler.accept_profile(updated) is True
    assert reconciler.identity.loyalty_points == 999
    assert (await snapshot_store.load_identity()).loyalty_points == 999


async def test_stop_unsubscribes_from_gateway(reconciler, gateway, snapshot_store, user_u1):
    await snapshot_store.save_identity(user_u1)
    await reconciler.start()
    await reconciler.wait_settled()
    await reconciler.stop()

    await gateway._emit(AuthEvent.SIGNED_OUT, None)

    assert reconciler.identity == user_u1


async def test_stale_startup_success_still_finishes_loading(reconciler, gateway):
    """
    Снимка нет, вход упал на загрузке профиля, а стартовая проверка пришла позже:
    ее результат устарел, но экран загрузки все равно должен исчезнуть.
    """
    release = asyncio.Event()

    async def slow_session():
        await release.wait()
        return SESSION_U1

    gateway.get_current_session.side_effect = slow_session
    gateway.fetch_profile.side_effect = [NetworkUnavailable("down"), Identity(id="u1", display_name="Ana")]
    reconciler.timeout = 5

    await reconciler.start()
    await gateway._emit(AuthEvent.SIGNED_IN, SESSION_U1)
    assert reconciler.state is SessionState.BOOTSTRAPPING

    release.set()
    await reconciler.wait_settled()

    assert reconciler.identity is None
    assert reconciler.state is SessionState.SIGNED_OUT
    assert reconciler.ready.is_set()


async def test_rejected_profile_request_does_not_escape_event_handler(mock_transport_client, snapshot_store, cart, user_u1):
    client = mock_transport_client(lambda request: httpx.Response(401, json={"message": "JWT expired"}))
    await snapshot_store.save_identity(user_u1)
    reconciler = SessionReconciler(RemoteSessionGateway(client), snapshot_store, cart, timeout=5)
    await reconciler.start()
    await reconciler.wait_settled()

    await reconciler.on_remote_event(AuthEvent.USER_UPDATED, SESSION_U1)

    assert reconciler.identity == user_u1
    assert reconciler.state is SessionState.PROVISIONAL_READY


async def test_saved_session_token_is_checked_at_startup(mock_transport_client, snapshot_store, cart, user_u1):
    def handler(request):
        if request.url.path == "/auth/v1/user":
            assert request.headers["Authorization"] == "Bearer token-u1"
            return httpx.Response(200, json={"id": "u1"})
        if request.url.path == "/rest/v1/users":
            return httpx.Response(200, json={"id": "u1", "name": "Ana", "points": 450, "is_socio": True})
        return httpx.Response(404)

    await snapshot_store.save_identity(user_u1)
    await snapshot_store.save_session(SESSION_U1)
    client = mock_transport_client(handler)
    reconciler = SessionReconciler(RemoteSessionGateway(client, snapshot_store), snapshot_store, cart, timeout=5)

    await reconciler.start()
    await reconciler.wait_settled()

    assert client.access_token == "token-u1"
    assert reconciler.state is SessionState.RECONCILED
    assert reconciler.identity.loyalty_points == 450
    assert (await snapshot_store.load_identity()).loyalty_points == 450
