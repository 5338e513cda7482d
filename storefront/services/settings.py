# storefront/services/settings.py

import logging
from typing import Optional

from storefront.clients.remote_store import RemoteStoreClient
from storefront.core.config import settings as app_settings  # Псевдоним, чтобы не путать с конфигом сайта
from storefront.crud import site_config as crud_site_config
from storefront.exceptions import NotFound, StorefrontError
from storefront.schemas.settings import SiteConfig

logger = logging.getLogger(__name__)


class SiteConfigService:
    """
    Глобальный конфиг сайта (логотип). Загружается один раз при старте и
    кешируется на весь процесс; меняется только явным сохранением из админки.
    """

    def __init__(self, client: RemoteStoreClient, row_id: str = app_settings.SITE_CONFIG_ROW_ID):
        self.client = client
        self.row_id = row_id
        self._config: Optional[SiteConfig] = None

    @property
    def logo_reference(self) -> str:
        if self._config is None:
            return app_settings.DEFAULT_LOGO_URL
        return self._config.logo_reference

    @property
    def loaded(self) -> bool:
        return self._config is not None

    async def load(self) -> SiteConfig:
        if self._config is not None:
            return self._config

        logger.info(f"Fetching site config row '{self.row_id}'.")
        try:
            config = await crud_site_config.get_global_config(self.client, self.row_id)
        except NotFound:
            logger.info("Site config row not found. Using default logo.")
            return SiteConfig(logo_reference=app_settings.DEFAULT_LOGO_URL)
        except StorefrontError:
            # Без кеширования дефолта: следующий load() попробует снова
            logger.warning("Site config unavailable. Using default logo for now.", exc_info=True)
            return SiteConfig(logo_reference=app_settings.DEFAULT_LOGO_URL)

        self._config = config
        return config

    async def save(self, logo_reference: str) -> SiteConfig:
        """Кеш меняется только после успешной записи в удаленное хранилище."""
        config = SiteConfig(logo_reference=logo_reference)
        saved = await crud_site_config.set_global_config(self.client, self.row_id, config)
        self._config = saved
        logger.info(f"Site logo updated to '{logo_reference}'.")
        return saved
