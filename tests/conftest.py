# tests/conftest.py
import asyncio
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock

from storefront.clients.remote_store import RemoteStoreClient
from storefront.schemas.product import Product
from storefront.schemas.user import Identity
from storefront.services.auth import RemoteSessionGateway
from storefront.services.cart import CartStore
from storefront.services.inventory import Inventory
from storefront.services.session import SessionReconciler
from storefront.services.snapshot import MemorySnapshotStore

# Короткий таймаут, чтобы тесты с "зависшей" сетью шли быстро
TEST_SESSION_TIMEOUT = 0.05


@pytest.fixture
def make_product():
    """Фабрика товаров в формате строк удаленной таблицы."""
    def _make(product_id="p1", name="Cuaderno", price=100.0, colors=None, **extra):
        row = {
            "id": product_id,
            "name": name,
            "price": price,
            "category": "Escolar",
            "colors": colors if colors is not None else [{"color": "Único", "stock": 5}],
        }
        row.update(extra)
        return Product.model_validate(row)
    return _make


@pytest.fixture
def user_u1() -> Identity:
    return Identity(id="u1", display_name="Ana", email="ana@example.com", loyalty_points=120, is_member=True)


@pytest.fixture
def snapshot_store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def inventory() -> Inventory:
    return Inventory()


@pytest.fixture
def cart(inventory) -> CartStore:
    return CartStore(inventory)


@pytest.fixture
def gateway() -> RemoteSessionGateway:
    """
    Настоящий шлюз (подписки и рассылка событий), но удаленные вызовы
    заменены на AsyncMock.
    """
    gw = RemoteSessionGateway(client=MagicMock())
    gw.get_current_session = AsyncMock(return_value=None)
    gw.fetch_profile = AsyncMock(return_value=None)
    return gw


@pytest.fixture
def reconciler(gateway, snapshot_store, cart) -> SessionReconciler:
    return SessionReconciler(gateway, snapshot_store, cart, timeout=TEST_SESSION_TIMEOUT)


@pytest.fixture
def hang_forever():
    """side_effect для AsyncMock: удаленный вызов, который не завершается."""
    async def _hang(*args, **kwargs):
        await asyncio.sleep(3600)
    return _hang


@pytest.fixture
def mock_transport_client():
    """
    Фабрика RemoteStoreClient поверх httpx.MockTransport.
    handler(request) -> httpx.Response
    """
    def _make(handler):
        client = RemoteStoreClient("http://remote.test", api_key="anon-key", transport=httpx.MockTransport(handler))
        return client

    return _make
