import threading
import unittest
from unittest.mock import MagicMock, patch

from redis import exceptions as redis_exceptions

from fitbyte.email_cache import InMemoryEmailCache, RedisEmailCache


class InMemoryEmailCacheTests(unittest.TestCase):
    def test_add_and_contains(self):
        cache = InMemoryEmailCache()
        self.assertFalse(cache.contains("a@example.com"))
        cache.add("a@example.com")
        self.assertTrue(cache.contains("a@example.com"))

    def test_evicts_least_recently_used(self):
        cache = InMemoryEmailCache(max_size=2)
        cache.add("a@example.com")
        cache.add("b@example.com")
        self.assertTrue(cache.contains("a@example.com"))
        cache.add("c@example.com")
        self.assertTrue(cache.contains("a@example.com"))
        self.assertFalse(cache.contains("b@example.com"))
        self.assertTrue(cache.contains("c@example.com"))

    def test_concurrent_lookups_and_evictions(self):
        cache = InMemoryEmailCache(max_size=4)
        errors = []

        def churn(worker: int):
            try:
                for i in range(2000):
                    cache.add(f"{worker}-{i % 8}@example.com")
                    cache.contains(f"{(worker + 1) % 4}-{i % 8}@example.com")
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=churn, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(errors, [])
        self.assertLessEqual(len(cache.entries), 4)


class RedisEmailCacheTests(unittest.TestCase):
    @patch("fitbyte.email_cache.redis.Redis.from_url")
    def test_uses_a_redis_set(self, from_url):
        client = MagicMock()
        client.sismember.return_value = 1
        from_url.return_value = client

        cache = RedisEmailCache(url="redis://localhost:6379/0", key="emails")
        cache.add("a@example.com")
        self.assertTrue(cache.contains("a@example.com"))
        client.sadd.assert_called_once_with("emails", "a@example.com")
        client.sismember.assert_called_once_with("emails", "a@example.com")

    @patch("fitbyte.email_cache.redis.Redis.from_url")
    def test_connection_errors_count_as_miss(self, from_url):
        client = MagicMock()
        client.sismember.side_effect = redis_exceptions.ConnectionError("reset")
        from_url.return_value = client

        cache = RedisEmailCache(url="redis://localhost:6379/0")
        self.assertFalse(cache.contains("a@example.com"))
        self.assertEqual(from_url.call_count, 2)

    @patch("fitbyte.email_cache.redis.Redis.from_url")
    def test_timeouts_count_as_miss(self, from_url):
        client = MagicMock()
        client.sismember.side_effect = redis_exceptions.TimeoutError("slow")
        client.sadd.side_effect = redis_exceptions.TimeoutError("slow")
        from_url.return_value = client

        cache = RedisEmailCache(url="redis://localhost:6379/0")
        with self.assertLogs("fitbyte.email_cache", level="WARNING"):
            self.assertFalse(cache.contains("a@example.com"))
            cache.add("a@example.com")
        self.assertEqual(from_url.call_count, 3)


if __name__ == "__main__":
    unittest.main()
