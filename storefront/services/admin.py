# storefront/services/admin.py

import logging
from collections import OrderedDict
from typing import List, Optional

from pydantic import ValidationError
from redis.asyncio import Redis

from storefront.clients.remote_store import RemoteStoreClient
from storefront.core import locales
from storefront.core.config import settings
from storefront.crud import products as crud_products
from storefront.crud import sales as crud_sales
from storefront.crud import user as crud_user
from storefront.exceptions import ValidationFailed
from storefront.schemas.product import (
    SINGLE_VARIANT_LABEL, Category, Product, ProductDraft, Variant, VariantDraft, merge_variants
)
from storefront.schemas.sales import (
    CategoryTotal, DashboardStats, DashboardTotals, Sale, SalesHistoryPoint
)
from storefront.schemas.user import Member, MemberPointsUpdate
from storefront.services.inventory import Inventory, VariantRef, clamp_stock, with_stock_delta
from storefront.services.session import SessionReconciler

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_KEY = "dashboard_stats"
UNCATEGORIZED_SALES = "Varios"
SPANISH_MONTHS = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]


# --- Товары ---

def new_product_draft() -> ProductDraft:
    """Черновик для кнопки "+ Nuevo"."""
    return ProductDraft(
        name="",
        price=0,
        previous_price=None,
        loyalty_points_awarded=0,
        category=Category.ESCOLAR,
        variants=[VariantDraft(label=SINGLE_VARIANT_LABEL, stock=10)],
        images=[],
    )


def adjust_draft_stock(draft: ProductDraft, index: int, delta: int) -> ProductDraft:
    """Кнопки +/- в форме: остаток отсекается на нуле, чужой индекс - no-op."""
    if not draft.variants or not 0 <= index < len(draft.variants):
        return draft
    variants = [v.model_copy() for v in draft.variants]
    variants[index] = VariantDraft(label=variants[index].label, stock=clamp_stock(variants[index].stock, delta))
    return draft.model_copy(update={"variants": variants})


def build_product_payload(draft: ProductDraft) -> dict:
    """
    Проверки на границе записи. Форма сама ничего не запрещает,
    поэтому все инварианты товара обеспечиваются здесь.
    """
    name = draft.name.strip()
    if not name:
        raise ValidationFailed(locales.ERROR_PRODUCT_NAME_REQUIRED)

    if draft.variants is None:
        # Вариации не задавались вовсе - одна синтетическая "Único"
        variants = [Variant(label=SINGLE_VARIANT_LABEL, stock=1)]
    elif not draft.variants:
        raise ValidationFailed(locales.ERROR_PRODUCT_NEEDS_VARIANT)
    else:
        variants = []
        for v in draft.variants:
            label = v.label.strip()
            if not label:
                raise ValidationFailed(locales.ERROR_VARIANT_LABEL_REQUIRED)
            variants.append(Variant(label=label, stock=max(0, v.stock)))
        variants = merge_variants(variants)

    return {
        "name": name,
        "description": draft.description or "",
        "price": max(0.0, float(draft.price or 0)),
        "old_price": draft.previous_price if draft.previous_price and draft.previous_price > 0 else None,
        "points": max(0, int(draft.loyalty_points_awarded or 0)),
        "category": (draft.category or Category.ESCOLAR).value,
        "images": list(draft.images),
        "colors": [v.model_dump(by_alias=True) for v in variants],
    }


class ProductAdminService:
    def __init__(self, client: RemoteStoreClient, inventory: Inventory):
        self.client = client
        self.inventory = inventory

    async def save(self, draft: ProductDraft) -> Product:
        """
        Создает или обновляет товар. Если проверка или запись не прошли,
        локальная модель остатков не меняется.
        """
        payload = build_product_payload(draft)
        saved = await crud_products.create_or_update(self.client, draft.id, payload)
        self.inventory.upsert(saved)
        logger.info(f"Product {saved.id} saved with {len(saved.variants)} variants.")
        return saved

    async def adjust_stock(self, product_id: str, variant: VariantRef, delta: int) -> Product:
        """Меняет остаток одной вариации (с отсечением на нуле) и сохраняет товар целиком."""
        updated = with_stock_delta(self.inventory.require(product_id), variant, delta)
        return await self.save(ProductDraft.from_product(updated))

    async def delete(self, product_id: str):
        await crud_products.delete(self.client, product_id)
        self.inventory.remove(product_id)
        logger.info(f"Product {product_id} deleted.")


# --- Участники клуба ---

class MemberAdminService:
    def __init__(self, client: RemoteStoreClient, reconciler: SessionReconciler):
        self.client = client
        self.reconciler = reconciler

    async def list_members(self) -> List[Member]:
        return await crud_user.list_members(self.client)

    async def set_points(self, user_id: str, points: int) -> Member:
        try:
            update = MemberPointsUpdate(points=points)
        except ValidationError as e:
            raise ValidationFailed(locales.ERROR_INVALID_POINTS) from e

        member = await crud_user.update_points(self.client, user_id, update.points)
        # Если админ правит сам себя - обновляем текущего пользователя
        await self.reconciler.accept_profile(member)
        logger.info(f"Loyalty points for user {user_id} set to {update.points}.")
        return member

    async def delete_member(self, user_id: str):
        await crud_user.delete_member(self.client, user_id)
        logger.info(f"Member {user_id} deleted.")


# --- Продажи и сводка ---

def _format_day(sale: Sale) -> str:
    day = sale.created_at
    return f"{day.day:02d} {SPANISH_MONTHS[day.month - 1]}"


def summarize_sales(sales: List[Sale], users_count: int, products_count: int) -> DashboardStats:
    """Сводка для дашборда. sales ожидаются в хронологическом порядке."""
    history = [SalesHistoryPoint(date=_format_day(s), amount=s.total) for s in sales]

    per_category: "OrderedDict[str, float]" = OrderedDict()
    for s in sales:
        name = s.category_summary or UNCATEGORIZED_SALES
        per_category[name] = per_category.get(name, 0.0) + s.total

    return DashboardStats(
        sales_history=history,
        category_stats=[CategoryTotal(name=k, total=round(v, 2)) for k, v in per_category.items()],
        totals=DashboardTotals(
            sales=round(sum(s.total for s in sales), 2),
            users=users_count,
            products=products_count,
        ),
    )


class SalesService:
    def __init__(self, client: RemoteStoreClient, redis: Optional[Redis] = None):
        self.client = client
        self.redis = redis

    async def list_sales(self) -> List[Sale]:
        return await crud_sales.list_sales(self.client, newest_first=True)

    async def dashboard_stats(self) -> DashboardStats:
        if self.redis is not None:
            cached = await self.redis.get(DASHBOARD_CACHE_KEY)
            if cached:
                logger.info("Serving dashboard stats from cache.")
                return DashboardStats.model_validate_json(cached)

        sales = await crud_sales.list_sales(self.client, newest_first=False)
        users_count = await crud_user.count_users(self.client)
        products_count = await crud_products.count_products(self.client)
        stats = summarize_sales(sales, users_count, products_count)

        if self.redis is not None:
            await self.redis.set(DASHBOARD_CACHE_KEY, stats.model_dump_json(), ex=settings.DASHBOARD_CACHE_TTL_SECONDS)
        return stats
