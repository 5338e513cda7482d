# storefront/services/inventory.py

"""
Модель остатков по вариациям. Единица учета - вариация (цвет), а не товар,
поэтому добавление в корзину проверяется по остатку конкретной вариации.

Чтения не блокируются и не линеаризуются с правками админа: видимый остаток
может отставать на одно обновление. Резервирования между "добавить в корзину"
и оформлением нет.
"""

import logging
from typing import Dict, List, Optional, Union

from storefront.clients.remote_store import RemoteStoreClient
from storefront.core import locales
from storefront.crud import products as crud_products
from storefront.exceptions import NotFound
from storefront.schemas.product import Product, Variant

logger = logging.getLogger(__name__)

VariantRef = Union[int, str]


def clamp_stock(current: int, delta: int) -> int:
    """Новый остаток никогда не уходит ниже нуля, каким бы ни был delta."""
    return max(0, int(current) + int(delta))


def _variant_index(product: Product, variant: VariantRef) -> int:
    if isinstance(variant, int):
        if 0 <= variant < len(product.variants):
            return variant
    else:
        for i, v in enumerate(product.variants):
            if v.label == variant:
                return i
    raise NotFound(f"Variant {variant!r} not found in product {product.id}.")


def with_stock_delta(product: Product, variant: VariantRef, delta: int) -> Product:
    """Возвращает копию товара с измененным остатком одной вариации."""
    index = _variant_index(product, variant)
    current = product.variants[index]
    variants = list(product.variants)
    variants[index] = Variant(label=current.label, stock=clamp_stock(current.stock, delta))
    return product.model_copy(update={"variants": variants})


def is_out_of_stock(product: Product) -> bool:
    return all(v.stock == 0 for v in product.variants)


class Inventory:
    """Живая модель каталога: товар -> список (метка вариации, остаток)."""

    def __init__(self, client: Optional[RemoteStoreClient] = None):
        self.client = client
        self._products: Dict[str, Product] = {}

    # --- загрузка ---

    def load(self, products: List[Product]):
        self._products = {p.id: p for p in products}

    async def refresh(self) -> List[Product]:
        if self.client is None:
            raise RuntimeError("Inventory has no remote client to refresh from.")
        products = await crud_products.list_products(self.client)
        self.load(products)
        logger.info(f"Inventory refreshed with {len(products)} products.")
        return products

    # --- чтение ---

    @property
    def products(self) -> List[Product]:
        """Товары в порядке загрузки (новые первыми)."""
        return list(self._products.values())

    def get(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def require(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise NotFound(locales.ERROR_PRODUCT_NOT_FOUND)
        return product

    def stock_for(self, product_id: str, variant_label: str) -> int:
        """Единственный источник истины для допуска в корзину. Неизвестное -> 0."""
        product = self._products.get(product_id)
        if product is None:
            return 0
        variant = product.variant(variant_label)
        return variant.stock if variant else 0

    def is_out_of_stock(self, product_id: str) -> bool:
        product = self._products.get(product_id)
        return product is None or is_out_of_stock(product)

    # --- запись ---

    def set_stock(self, product_id: str, variant: VariantRef, delta: int) -> int:
        """
        Меняет остаток вариации на delta с отсечением на нуле только в локальной
        модели и возвращает новый остаток. В удаленное хранилище ничего не пишется:
        правка остатка из админки идет через ProductAdminService.adjust_stock,
        который сохраняет товар и потом обновляет модель через upsert().
        """
        product = with_stock_delta(self.require(product_id), variant, delta)
        self._products[product_id] = product
        new_stock = product.variants[_variant_index(product, variant)].stock
        logger.info(f"Stock for product {product_id} variant {variant!r} changed by {delta} -> {new_stock}.")
        return new_stock

    def upsert(self, product: Product):
        if product.id in self._products:
            self._products[product.id] = product
        else:
            # Новые товары идут первыми, как в выдаче по created_at.desc
            self._products = {product.id: product, **self._products}

    def remove(self, product_id: str):
        self._products.pop(product_id, None)
