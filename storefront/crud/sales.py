# storefront/crud/sales.py
import logging
from typing import List

from storefront.clients.remote_store import RemoteStoreClient
from storefront.crud.errors import remote_call
from storefront.schemas.sales import Sale

logger = logging.getLogger(__name__)

TABLE = "rest/v1/sales"


async def list_sales(client: RemoteStoreClient, newest_first: bool = True) -> List[Sale]:
    order = "created_at.desc" if newest_first else "created_at.asc"
    async with remote_call("list_sales"):
        response = await client.get(TABLE, params={"select": "*", "order": order})

    sales = []
    for row in response.json():
        try:
            sales.append(Sale.model_validate(row))
        except Exception:
            logger.warning(f"Skipping sale row due to validation error for ID {row.get('id')}", exc_info=True)
    return sales
