# storefront/core/redis.py
import redis.asyncio as redis
from storefront.core.config import settings

# Общий асинхронный клиент Redis (снимки и кеш админских агрегатов).
# decode_responses=True автоматически декодирует ответы из байтов в строки
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
