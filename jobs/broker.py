"""
Dramatiq broker configuration.

Redis-based message broker for the expiry sweep queue.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import Retries, ShutdownNotifications
from loguru import logger

from nearme.config.settings import settings

redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
)

# ShutdownNotifications: lets a sweep stop between documents on shutdown
# Retries: a sweep that crashed outright is retried with backoff; the next
# scheduled tick covers anything still missed
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(
    Retries(
        max_retries=2,
        min_backoff=1000,  # 1 second
        max_backoff=30000,  # 30 seconds
    )
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(
    f"Dramatiq broker initialized: "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)
