# storefront/crud/site_config.py
from storefront.clients.remote_store import RemoteStoreClient, SINGLE_OBJECT
from storefront.core import locales
from storefront.crud.errors import remote_call
from storefront.schemas.settings import SiteConfig

TABLE = "rest/v1/site_config"


async def get_global_config(client: RemoteStoreClient, row_id: str) -> SiteConfig:
    """Читает единственную строку глобальной конфигурации. Нет строки -> NotFound."""
    async with remote_call("get_global_config", not_found_message=locales.ERROR_CONFIG_NOT_FOUND):
        response = await client.get(
            TABLE,
            params={"select": "logo_url", "id": f"eq.{row_id}"},
            headers={"Accept": SINGLE_OBJECT},
        )
    return SiteConfig.model_validate(response.json())


async def set_global_config(client: RemoteStoreClient, row_id: str, config: SiteConfig) -> SiteConfig:
    """Upsert строки конфигурации по ее id."""
    async with remote_call("set_global_config", not_found_message=locales.ERROR_CONFIG_NOT_FOUND):
        await client.post(
            TABLE,
            json={"id": row_id, **config.model_dump(by_alias=True)},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
    return config
