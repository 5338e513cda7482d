# storefront/schemas/cart.py
from pydantic import BaseModel, ConfigDict, Field
from .product import Product


# Позиция корзины хранит КОПИЮ товара на момент добавления,
# поэтому последующие изменения остатков ее не трогают
class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: Product
    quantity: int = Field(1, ge=1)
    selected_variant_label: str

    @property
    def subtotal(self) -> float:
        return self.product.price * self.quantity
