"""Redis-backed lobby snapshot store.

Writes run on the lobby manager's background executor. Errors propagate
to that executor, where they are logged and dropped.
"""

from __future__ import annotations

import json
import logging

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "mindmeld:lobby:"


def lobby_key(code: str) -> str:
    return f"{KEY_PREFIX}{code}"


class RedisLobbyStore:
    def __init__(self, client: redis.Redis, ttl_sec: int | None = None) -> None:
        self.client = client
        self.ttl_sec = ttl_sec or None

    @classmethod
    def from_url(cls, url: str, ttl_sec: int | None = None) -> "RedisLobbyStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        logger.info("Lobby snapshots will be stored in Redis")
        return cls(client, ttl_sec=ttl_sec)

    def save_lobby(self, snapshot: dict) -> None:
        payload = json.dumps(snapshot)
        key = lobby_key(snapshot["code"])
        if self.ttl_sec:
            self.client.setex(key, self.ttl_sec, payload)
        else:
            self.client.set(key, payload)

    def delete_lobby(self, code: str) -> None:
        self.client.delete(lobby_key(code))
