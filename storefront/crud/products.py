# storefront/crud/products.py
import logging
from typing import List

from storefront.clients.remote_store import RemoteStoreClient, SINGLE_OBJECT
from storefront.crud.errors import remote_call, parse_content_range_total
from storefront.schemas.product import Product

logger = logging.getLogger(__name__)

TABLE = "rest/v1/products"

# --- Репозиторий товаров в удаленном хранилище ---

async def list_products(client: RemoteStoreClient) -> List[Product]:
    """Получает все товары, новые первыми. Невалидные строки пропускаются."""
    async with remote_call("list_products"):
        response = await client.get(TABLE, params={"select": "*", "order": "created_at.desc"})
    rows = response.json()

    products = []
    for row in rows:
        try:
            products.append(Product.model_validate(row))
        except Exception:
            logger.warning(f"Skipping product row due to validation error for ID {row.get('id')}", exc_info=True)
    return products


async def create_or_update(client: RemoteStoreClient, product_id: str | None, payload: dict) -> Product:
    """
    Вставляет новую строку (product_id is None) или обновляет существующую.
    Остатки по вариациям пишутся вместе со всем документом товара.
    """
    headers = {"Prefer": "return=representation", "Accept": SINGLE_OBJECT}
    async with remote_call("create_or_update_product"):
        if product_id is None:
            response = await client.post(TABLE, json=payload, headers=headers)
        else:
            response = await client.patch(TABLE, json=payload, params={"id": f"eq.{product_id}"}, headers=headers)
    return Product.model_validate(response.json())


async def delete(client: RemoteStoreClient, product_id: str) -> None:
    async with remote_call("delete_product"):
        await client.delete(TABLE, params={"id": f"eq.{product_id}"})


async def count_products(client: RemoteStoreClient) -> int:
    async with remote_call("count_products"):
        response = await client.head(TABLE, params={"select": "id"}, headers={"Prefer": "count=exact"})
    return parse_content_range_total(response.headers.get("Content-Range"))
