# storefront/crud/user.py
import logging
from typing import List

from storefront.clients.remote_store import RemoteStoreClient, SINGLE_OBJECT
from storefront.core import locales
from storefront.crud.errors import remote_call, parse_content_range_total
from storefront.exceptions import NotFound
from storefront.schemas.user import Identity, Member

logger = logging.getLogger(__name__)

TABLE = "rest/v1/users"


async def get_profile(client: RemoteStoreClient, user_id: str) -> Identity | None:
    """Получает профиль по id. Отсутствие строки - это None, а не ошибка."""
    try:
        async with remote_call("get_profile", not_found_message=locales.ERROR_PROFILE_NOT_FOUND):
            response = await client.get(
                TABLE,
                params={"select": "*", "id": f"eq.{user_id}"},
                headers={"Accept": SINGLE_OBJECT},
            )
    except NotFound:
        logger.info(f"Profile row for user {user_id} not found.")
        return None
    return Identity.model_validate(response.json())


async def list_members(client: RemoteStoreClient) -> List[Member]:
    """Все участники клуба, по убыванию баллов."""
    async with remote_call("list_members"):
        response = await client.get(TABLE, params={"select": "*", "order": "points.desc"})
    return [Member.model_validate(row) for row in response.json()]


async def update_points(client: RemoteStoreClient, user_id: str, points: int) -> Member:
    async with remote_call("update_points", not_found_message=locales.ERROR_PROFILE_NOT_FOUND):
        response = await client.patch(
            TABLE,
            json={"points": points},
            params={"id": f"eq.{user_id}"},
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT},
        )
    return Member.model_validate(response.json())


async def delete_member(client: RemoteStoreClient, user_id: str) -> None:
    async with remote_call("delete_member", not_found_message=locales.ERROR_PROFILE_NOT_FOUND):
        await client.delete(TABLE, params={"id": f"eq.{user_id}"})


async def count_users(client: RemoteStoreClient) -> int:
    async with remote_call("count_users"):
        response = await client.head(TABLE, params={"select": "id"}, headers={"Prefer": "count=exact"})
    return parse_content_range_total(response.headers.get("Content-Range"))
