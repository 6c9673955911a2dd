# app/core/redis.py
import redis.asyncio as redis
from app.core.config import settings

# decode_responses=True returns str instead of bytes
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

STARTUP_LOCK_KEY = "cashback_ledger_startup_lock"
