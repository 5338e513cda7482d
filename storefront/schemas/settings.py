# storefront/schemas/settings.py
from pydantic import BaseModel, ConfigDict, Field


class SiteConfig(BaseModel):
    """Глобальная строка настроек сайта (брендинг)."""
    model_config = ConfigDict(populate_by_name=True)

    logo_reference: str = Field(..., alias="logo_url")
