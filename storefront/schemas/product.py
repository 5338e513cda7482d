# storefront/schemas/product.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional

# Метка единственной вариации для товаров без цветов
SINGLE_VARIANT_LABEL = "Único"


class Category(str, Enum):
    ESCOLAR = "Escolar"
    REGALARIA = "Regalaría"
    OFICINA = "Oficina"
    TECNOLOGIA = "Tecnología"
    NOVEDADES = "Novedades"
    OFERTAS = "Ofertas"


class Variant(BaseModel):
    """Покупаемая форма товара (обычно цвет) со своим остатком."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    label: str = Field(..., alias="color")
    stock: int = Field(0, ge=0)


def merge_variants(variants: List[Variant]) -> List[Variant]:
    """
    Схлопывает вариации с одинаковой меткой: побеждает последняя запись,
    позиция остается у первого вхождения.
    """
    merged: dict[str, Variant] = {}
    for variant in variants:
        merged[variant.label] = variant
    return list(merged.values())


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    name: str
    description: str = ""
    price: float = Field(0.0, ge=0)
    previous_price: Optional[float] = Field(None, ge=0, alias="old_price")
    loyalty_points_awarded: int = Field(0, ge=0, alias="points")
    category: Category = Category.ESCOLAR
    images: List[str] = []
    variants: List[Variant] = Field(default_factory=list, alias="colors")
    created_at: Optional[datetime] = None

    @field_validator("description", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @field_validator("images", "variants", mode="before")
    @classmethod
    def none_to_list(cls, v):
        # Удаленная таблица хранит null вместо пустого массива
        return v or []

    @field_validator("previous_price", mode="before")
    @classmethod
    def zero_to_none(cls, v):
        # Админка исторически сохраняла 0 вместо "нет старой цены"
        if v in (None, "", 0, "0"):
            return None
        return v

    @model_validator(mode="after")
    def ensure_variants(self):
        if not self.variants:
            self.variants = [Variant(label=SINGLE_VARIANT_LABEL, stock=0)]
        else:
            self.variants = merge_variants(self.variants)
        return self

    def variant(self, label: str) -> Optional[Variant]:
        for v in self.variants:
            if v.label == label:
                return v
        return None


# --- Схемы для админки (форма редактирования товара) ---

class VariantDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str = Field("", alias="color")
    stock: int = 0


class ProductDraft(BaseModel):
    """
    Черновик товара из формы. Ничего не проверяет сам - все проверки
    выполняются при сохранении (ProductAdminService.save).
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = ""
    description: str = ""
    price: float = 0.0
    previous_price: Optional[float] = None
    loyalty_points_awarded: int = 0
    category: Optional[Category] = None
    images: List[str] = []
    # None - вариации не заданы вовсе, [] - все вариации удалены в форме
    variants: Optional[List[VariantDraft]] = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductDraft":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            previous_price=product.previous_price,
            loyalty_points_awarded=product.loyalty_points_awarded,
            category=product.category,
            images=list(product.images),
            variants=[VariantDraft(label=v.label, stock=v.stock) for v in product.variants],
        )
