# storefront/state.py

"""
Явный объект состояния приложения. Передается потребителям по ссылке;
все изменения идут через API SessionReconciler / CartStore / FavoritesStore,
а не через прямое присваивание полей.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis

from storefront.clients.remote_store import RemoteStoreClient
from storefront.schemas.user import Identity
from storefront.services.admin import MemberAdminService, ProductAdminService, SalesService
from storefront.services.auth import RemoteSessionGateway
from storefront.services.cart import CartStore
from storefront.services.favorites import FavoritesStore
from storefront.services.inventory import Inventory
from storefront.services.session import SessionReconciler, SessionState
from storefront.services.settings import SiteConfigService
from storefront.services.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    client: RemoteStoreClient
    snapshot: SnapshotStore
    gateway: RemoteSessionGateway
    inventory: Inventory
    cart: CartStore
    favorites: FavoritesStore
    session: SessionReconciler
    site_config: SiteConfigService
    products_admin: ProductAdminService
    members_admin: MemberAdminService
    sales: SalesService

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.identity

    @property
    def ready(self) -> bool:
        """Можно убирать экран загрузки."""
        return self.session.state is not SessionState.BOOTSTRAPPING

    @property
    def is_authenticated(self) -> bool:
        return self.session.identity is not None

    @property
    def logo_reference(self) -> str:
        return self.site_config.logo_reference


def build_app_state(
    client: RemoteStoreClient,
    snapshot: SnapshotStore,
    redis: Optional[Redis] = None,
    session_timeout: Optional[float] = None,
) -> AppState:
    inventory = Inventory(client)
    cart = CartStore(inventory)
    gateway = RemoteSessionGateway(client, snapshot)
    session_kwargs = {"timeout": session_timeout} if session_timeout is not None else {}
    session = SessionReconciler(gateway, snapshot, cart, **session_kwargs)
    return AppState(
        client=client,
        snapshot=snapshot,
        gateway=gateway,
        inventory=inventory,
        cart=cart,
        favorites=FavoritesStore(snapshot),
        session=session,
        site_config=SiteConfigService(client),
        products_admin=ProductAdminService(client, inventory),
        members_admin=MemberAdminService(client, session),
        sales=SalesService(client, redis),
    )
