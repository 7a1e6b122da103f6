import redis
from datetime import datetime
from typing import Optional
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, PRESENCE_TTL
from redis_keys import REDIS_CONN_KEY, REDIS_ONLINE_KEY, REDIS_STATS_KEY
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client() -> redis.Redis:
    try:
        client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
        # Test connection
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise


class RedisBackend:
    """Mirrors live connections and pairing counters into Redis.

    Matching never reads from here; a Redis outage only degrades /stats.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl: int = PRESENCE_TTL):
        self.redis_client = redis_client if redis_client is not None else create_redis_client()
        self.ttl = ttl
        logger.info("Initializing RedisBackend presence mirror")

    def add_connection(self, connection_id: str, connected_at: Optional[str] = None, client_host: Optional[str] = None):
        """Record a connection as online. connection_id is unique per WebSocket connection."""
        logger.debug(f"Adding connection {connection_id} to presence")
        conn_key = REDIS_CONN_KEY.format(connection_id=connection_id)
        metadata = {"connected_at": connected_at or datetime.now().isoformat()}
        if client_host:
            metadata["client_host"] = client_host
        try:
            pipe = self.redis_client.pipeline()
            pipe.sadd(REDIS_ONLINE_KEY, connection_id)
            pipe.hset(conn_key, mapping=metadata)
            if self.ttl:
                pipe.expire(conn_key, self.ttl)
            pipe.execute()
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to record presence for {connection_id}: {e}", exc_info=True)
            return False

    def remove_connection(self, connection_id: str):
        logger.debug(f"Removing connection {connection_id} from presence")
        conn_key = REDIS_CONN_KEY.format(connection_id=connection_id)
        try:
            pipe = self.redis_client.pipeline()
            pipe.srem(REDIS_ONLINE_KEY, connection_id)
            pipe.delete(conn_key)
            removed, deleted = pipe.execute()
            logger.debug(f"Connection {connection_id} removed from presence: online_set={removed}, metadata={deleted}")
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to clear presence for {connection_id}: {e}", exc_info=True)
            return False

    def get_connection(self, connection_id: str) -> dict:
        try:
            return self.redis_client.hgetall(REDIS_CONN_KEY.format(connection_id=connection_id))
        except redis.RedisError as e:
            logger.error(f"Failed to read presence for {connection_id}: {e}", exc_info=True)
            return {}

    def record_pairings(self, count: int = 1):
        if count <= 0:
            return
        try:
            self.redis_client.hincrby(REDIS_STATS_KEY, "pairs_formed", count)
        except redis.RedisError as e:
            logger.error(f"Failed to record {count} pairings: {e}", exc_info=True)

    def get_online_count(self) -> Optional[int]:
        try:
            return self.redis_client.scard(REDIS_ONLINE_KEY)
        except redis.RedisError as e:
            logger.error(f"Failed to read online count: {e}", exc_info=True)
            return None

    def get_pairs_formed(self) -> Optional[int]:
        try:
            value = self.redis_client.hget(REDIS_STATS_KEY, "pairs_formed")
            return int(value) if value is not None else 0
        except redis.RedisError as e:
            logger.error(f"Failed to read pairing counter: {e}", exc_info=True)
            return None
