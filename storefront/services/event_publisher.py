# storefront/services/event_publisher.py
import json

import redis
from redis.exceptions import RedisError

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CHANNEL_PREFIX = "storefront"


class EventPublisher:
    """
    Push events for clients listening on redis channels (``storefront:<topic>``).
    The streaming transport subscribes on its own; publishing is best-effort.
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    def publish(self, topic: str, payload: dict) -> None:
        try:
            self._publish(f"{CHANNEL_PREFIX}:{topic}", json.dumps(payload, default=str))
        except RedisError as e:
            logger.warning(f"Could not publish {topic}: {e}")

    @redis_retry()
    def _publish(self, channel: str, message: str) -> int:
        return self.redis.publish(channel, message)
