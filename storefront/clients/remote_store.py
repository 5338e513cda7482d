# storefront/clients/remote_store.py

import httpx
from storefront.core.config import settings
import logging

logger = logging.getLogger(__name__)

# Заголовок, при котором REST API возвращает одну строку объектом, а не списком
SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class RemoteStoreClient:
    """
    Асинхронный клиент для REST API удаленного хранилища строк (таблицы + auth).
    Публичный ключ передается в заголовке `apikey`, токен пользователя -
    в `Authorization: Bearer`, если сессия установлена.
    """
    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token: str | None = None
        timeouts = httpx.Timeout(timeout, read=timeout * 2)
        self.async_client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": api_key},
            timeout=timeouts,
            transport=transport,
        )

    def set_access_token(self, token: str | None):
        self.access_token = token

    def _headers(self, extra: dict | None = None) -> dict:
        headers = {"Authorization": f"Bearer {self.access_token or self.api_key}"}
        if extra:
            headers.update(extra)
        return headers

    async def get(self, endpoint: str, params: dict = None, headers: dict = None) -> httpx.Response:
        """
        Выполняет GET-запрос. В случае успеха возвращает объект Response.
        В случае HTTP-ошибки (4xx/5xx) выбрасывает исключение.
        """
        try:
            response = await self.async_client.get(endpoint, params=params, headers=self._headers(headers))
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"Network error during GET request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during GET request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

    async def head(self, endpoint: str, params: dict = None, headers: dict = None) -> httpx.Response:
        """HEAD-запрос, используется для подсчета строк (Content-Range)."""
        try:
            response = await self.async_client.head(endpoint, params=params, headers=self._headers(headers))
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"Network error during HEAD request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during HEAD request to {e.request.url!r}: {e.response.status_code}", exc_info=True)
            raise

    async def post(self, endpoint: str, json: dict | list | None = None, params: dict = None, headers: dict = None) -> httpx.Response:
        """
        Выполняет POST-запрос. В случае успеха возвращает объект Response.
        В случае HTTP-ошибки (4xx/5xx) выбрасывает исключение.
        """
        try:
            response = await self.async_client.post(endpoint, json=json, params=params, headers=self._headers(headers))
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"Network error during POST request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during POST request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

    async def patch(self, endpoint: str, json: dict, params: dict = None, headers: dict = None) -> httpx.Response:
        """Выполняет PATCH-запрос (частичное обновление строк по фильтру в params)."""
        try:
            response = await self.async_client.patch(endpoint, json=json, params=params, headers=self._headers(headers))
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"Network error during PATCH request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during PATCH request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

    async def delete(self, endpoint: str, params: dict = None, headers: dict = None) -> httpx.Response:
        """
        Выполняет DELETE-запрос. В случае успеха возвращает объект Response.
        В случае HTTP-ошибки (4xx/5xx) выбрасывает исключение.
        """
        try:
            response = await self.async_client.delete(endpoint, params=params, headers=self._headers(headers))
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            logger.error(f"Network error during DELETE request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during DELETE request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

    async def aclose(self):
        await self.async_client.aclose()

# Создаем синглтон
remote_client = RemoteStoreClient(
    base_url=settings.REMOTE_URL,
    api_key=settings.REMOTE_ANON_KEY,
    timeout=settings.REMOTE_TIMEOUT_SECONDS,
)
