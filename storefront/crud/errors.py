# storefront/crud/errors.py

import logging
from contextlib import asynccontextmanager

import httpx

from storefront.core import locales
from storefront.exceptions import NetworkUnavailable, NotFound, PermissionDenied, ValidationFailed

logger = logging.getLogger(__name__)

# 406 - REST API не смог вернуть ровно одну строку для object+json запроса
NOT_FOUND_STATUSES = frozenset({404, 406})
AUTH_STATUSES = frozenset({401, 403})
# Таймаут запроса и лимит частоты - временные сбои, как и 5xx
TRANSIENT_STATUSES = frozenset({408, 429})


@asynccontextmanager
async def remote_call(operation: str, not_found_message: str = locales.ERROR_PRODUCT_NOT_FOUND):
    """
    Граница репозитория: переводит ошибки httpx в доменные.
    Сетевые сбои, таймауты и 5xx -> NetworkUnavailable, отсутствие строки -> NotFound,
    401/403 -> PermissionDenied, остальные 4xx (400, 409, 422...) -> ValidationFailed.
    Наружу httpx-исключения не выходят.
    """
    try:
        yield
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        if status_code in NOT_FOUND_STATUSES:
            raise NotFound(not_found_message) from e
        if status_code >= 500 or status_code in TRANSIENT_STATUSES:
            logger.warning(f"Remote store returned {status_code} during '{operation}'.")
            raise NetworkUnavailable(locales.ERROR_NETWORK_UNAVAILABLE) from e
        if status_code in AUTH_STATUSES:
            logger.warning(f"Remote store denied access ({status_code}) during '{operation}'.")
            raise PermissionDenied(locales.ERROR_PERMISSION_DENIED) from e
        logger.warning(f"Remote store rejected '{operation}' with {status_code}.")
        raise ValidationFailed(locales.ERROR_REMOTE_REJECTED) from e
    except httpx.RequestError as e:
        logger.warning(f"Remote store unreachable during '{operation}': {e.__class__.__name__}")
        raise NetworkUnavailable(locales.ERROR_NETWORK_UNAVAILABLE) from e


def parse_content_range_total(header: str | None) -> int:
    """Извлекает общее число строк из заголовка `Content-Range: 0-24/573`."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0
