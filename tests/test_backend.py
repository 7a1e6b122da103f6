"""
Unit tests for the Redis presence mirror.
"""

from unittest.mock import MagicMock

import pytest
import redis

from backend import RedisBackend
from redis_keys import REDIS_CONN_KEY, REDIS_ONLINE_KEY


class TestRedisBackend:

    @pytest.mark.unit
    def test_add_and_remove_connection(self, presence, redis_client):
        assert presence.add_connection("c1", connected_at="2025-01-01T00:00:00", client_host="127.0.0.1") is True

        assert presence.get_online_count() == 1
        assert presence.get_connection("c1") == {
            "connected_at": "2025-01-01T00:00:00",
            "client_host": "127.0.0.1",
        }
        assert 0 < redis_client.ttl(REDIS_CONN_KEY.format(connection_id="c1")) <= 60

        assert presence.remove_connection("c1") is True
        assert presence.get_online_count() == 0
        assert presence.get_connection("c1") == {}

    @pytest.mark.unit
    def test_pairing_counter(self, presence):
        assert presence.get_pairs_formed() == 0

        presence.record_pairings(2)
        presence.record_pairings()
        presence.record_pairings(0)

        assert presence.get_pairs_formed() == 3

    @pytest.mark.unit
    def test_redis_errors_are_contained(self):
        client = MagicMock()
        client.pipeline.side_effect = redis.ConnectionError("connection refused")
        client.scard.side_effect = redis.ConnectionError("connection refused")
        client.hget.side_effect = redis.ConnectionError("connection refused")
        client.hincrby.side_effect = redis.ConnectionError("connection refused")
        client.hgetall.side_effect = redis.ConnectionError("connection refused")
        backend = RedisBackend(redis_client=client)

        assert backend.add_connection("c1") is False
        assert backend.remove_connection("c1") is False
        backend.record_pairings(1)
        assert backend.get_online_count() is None
        assert backend.get_pairs_formed() is None
        assert backend.get_connection("c1") == {}

    @pytest.mark.unit
    def test_online_set_is_shared_between_instances(self, redis_client):
        first = RedisBackend(redis_client=redis_client)
        second = RedisBackend(redis_client=redis_client)

        first.add_connection("c1")
        second.add_connection("c2")

        assert redis_client.smembers(REDIS_ONLINE_KEY) == {"c1", "c2"}
        assert first.get_online_count() == 2
