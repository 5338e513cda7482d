# storefront/services/cart.py

import logging
from typing import Tuple

from storefront.core import locales
from storefront.exceptions import OutOfStock
from storefront.schemas.cart import CartLine
from storefront.schemas.product import Product
from storefront.services.inventory import Inventory

logger = logging.getLogger(__name__)

Lines = Tuple[CartLine, ...]


# --- Чистые переходы состояния корзины ---

def append_line(lines: Lines, line: CartLine) -> Lines:
    # Каждое добавление - отдельная позиция, одинаковые не склеиваются
    return (*lines, line)


def remove_line(lines: Lines, index: int) -> Lines:
    if not 0 <= index < len(lines):
        return lines
    return lines[:index] + lines[index + 1:]


def cart_total(lines: Lines) -> float:
    return round(sum(line.subtotal for line in lines), 2)


class CartStore:
    """
    Корзина в памяти: один писатель, синхронные операции, без сохранения
    между перезагрузками. Допуск в корзину проверяется по живой модели остатков.
    """

    def __init__(self, inventory: Inventory):
        self.inventory = inventory
        self._lines: Lines = ()

    @property
    def lines(self) -> Lines:
        return self._lines

    @property
    def count(self) -> int:
        """Количество позиций (не единиц)."""
        return len(self._lines)

    @property
    def units(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total(self) -> float:
        return cart_total(self._lines)

    def add(self, product: Product, variant_label: str) -> CartLine:
        """
        Добавляет одну единицу выбранной вариации отдельной позицией.
        Остаток смотрится в Inventory на момент вызова; резерва нет, так что
        повторная проверка перед оформлением - забота вызывающего.
        """
        stock = self.inventory.stock_for(product.id, variant_label)
        if stock <= 0:
            logger.info(f"Rejected add to cart: product {product.id} variant '{variant_label}' has no stock.")
            raise OutOfStock(
                locales.ERROR_OUT_OF_STOCK.format(product_name=product.name, variant_label=variant_label),
                product_id=product.id,
                variant_label=variant_label,
            )

        live = self.inventory.get(product.id) or product
        line = CartLine(
            product=live.model_copy(deep=True),
            quantity=1,
            selected_variant_label=variant_label,
        )
        self._lines = append_line(self._lines, line)
        logger.info(f"Added product {product.id} ('{variant_label}') to cart. Lines: {len(self._lines)}.")
        return line

    def remove(self, index: int) -> bool:
        """Удаляет позицию по индексу. Индекс вне диапазона - тихий no-op."""
        before = len(self._lines)
        self._lines = remove_line(self._lines, index)
        return len(self._lines) != before

    def clear(self):
        if self._lines:
            logger.info(f"Cart cleared ({len(self._lines)} lines).")
        self._lines = ()
