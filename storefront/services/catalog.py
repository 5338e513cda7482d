# storefront/services/catalog.py

import logging
import unicodedata
from typing import Iterable, List, Optional, Union

from storefront.core.config import settings
from storefront.schemas.product import Category, Product

logger = logging.getLogger(__name__)

# Служебные витрины каталога помимо категорий
VIEW_CATALOG = "Catalog"
VIEW_FAVORITES = "Favorites"

CatalogView = Union[Category, str]


def filter_products(
    products: Iterable[Product],
    view: CatalogView = VIEW_CATALOG,
    search_term: str = "",
    favorites: Optional[Iterable[str]] = None,
) -> List[Product]:
    """
    Фильтрует каталог:
    - поиск по подстроке в названии без учета регистра;
    - "Catalog" - все товары, "Favorites" - только избранные;
    - "Ofertas" - товары со старой ценой ИЛИ из категории Ofertas;
    - иначе - точное совпадение категории.
    """
    term = search_term.strip().lower()
    favorite_ids = set(favorites or ())
    view_value = view.value if isinstance(view, Category) else view

    result = []
    for product in products:
        if term and term not in product.name.lower():
            continue
        if view_value == VIEW_CATALOG:
            result.append(product)
        elif view_value == VIEW_FAVORITES:
            if product.id in favorite_ids:
                result.append(product)
        elif view_value == Category.OFERTAS.value:
            if product.previous_price is not None or product.category is Category.OFERTAS:
                result.append(product)
        elif product.category.value == view_value:
            result.append(product)
    return result


def category_slug(category: Category) -> str:
    """'Regalaría' -> 'regalaria' (нижний регистр, без диакритики)."""
    normalized = unicodedata.normalize("NFD", category.value.lower())
    return "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")


def category_from_slug(slug: str) -> Optional[Category]:
    for category in Category:
        if category_slug(category) == slug:
            return category
    return None


def image_url(reference: str | None, width: int = 600) -> str:
    """Ссылка на изображение: заглушка, прямой URL/data-URI или трансформация CDN по public id."""
    if not reference:
        return settings.IMAGE_PLACEHOLDER_URL
    if reference.startswith("data:") or reference.startswith("http"):
        return reference
    return f"{settings.IMAGE_CDN_URL}/q_auto,f_auto,w_{width}/{reference}"


def default_variant_label(product: Product) -> str:
    """Вариация, выбранная по умолчанию в карточке: первая с остатком, иначе первая."""
    for variant in product.variants:
        if variant.stock > 0:
            return variant.label
    return product.variants[0].label

