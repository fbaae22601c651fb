"""
Cache of registered emails, consulted before hitting the database on signup.

Supports an in-memory LRU for tests/local runs and a Redis-backed set for
deployments with several API processes.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class EmailCache(Protocol):
    """Minimal membership interface for registered emails."""

    def contains(self, email: str) -> bool:
        ...

    def add(self, email: str) -> None:
        ...


@dataclass
class InMemoryEmailCache:
    """Bounded LRU set; the oldest entries are evicted past ``max_size``."""

    max_size: int = 10_000
    entries: "OrderedDict[str, None]" = field(default_factory=OrderedDict)
    # Sync routes share the cache across threadpool workers.
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def contains(self, email: str) -> bool:
        with self._lock:
            if email not in self.entries:
                return False
            self.entries.move_to_end(email)
            return True

    def add(self, email: str) -> None:
        with self._lock:
            self.entries[email] = None
            self.entries.move_to_end(email)
            while len(self.entries) > self.max_size:
                self.entries.popitem(last=False)

    def reset(self) -> None:
        with self._lock:
            self.entries.clear()


@dataclass
class RedisEmailCache:
    """Redis-backed cache using a single set."""

    url: str
    key: str = "fitbyte:emails"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def contains(self, email: str) -> bool:
        try:
            return bool(self.client.sismember(self.key, email))
        except redis_exceptions.RedisError as exc:
            # Treat as a miss; the unique index on users.email still holds.
            logger.warning("Redis unavailable, skipping email cache lookup: %s", exc)
            self.client = redis.Redis.from_url(self.url)
            return False

    def add(self, email: str) -> None:
        try:
            self.client.sadd(self.key, email)
        except redis_exceptions.RedisError as exc:
            logger.warning("Redis unavailable, email not cached: %s", exc)
            self.client = redis.Redis.from_url(self.url)
