"""
camunda8_sdk.tier2_reliability.token_cache
────────────────────────────────────────────
Durable OAuth token stores. The OAuth provider keeps its own in-memory map;
a durable store lets tokens survive process restarts (file) or be shared by
a fleet of workers (Redis), so a restart does not cost a token request.

Backends:
    file  : one JSON file per key under CAMUNDA_TOKEN_CACHE_DIR (default)
    redis : CAMUNDA_TOKEN_CACHE_REDIS_URL, TTL taken from the token's exp
    memory: in-process, for tests and local development

Disable with CAMUNDA_TOKEN_DISK_CACHE_DISABLE=true.
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from camunda8_sdk.tier0_core.config import CamundaSdkConfig
from camunda8_sdk.tier0_core.logging import get_logger
from camunda8_sdk.tier1_runtime.clock import Clock, get_clock

log = get_logger(__name__)


class Token(BaseModel):
    """An access token as returned by the token endpoint, plus its expiry."""

    access_token: str
    scope: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    expiry: int = 0
    audience: str | None = None


# ── Interface ─────────────────────────────────────────────────────────────────

@runtime_checkable
class TokenCache(Protocol):
    async def get(self, key: str) -> Token | None: ...
    async def set(self, key: str, token: Token, decoded: dict[str, Any]) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def flush(self) -> None: ...


# ── In-memory ─────────────────────────────────────────────────────────────────

class MemoryTokenCache:
    def __init__(self) -> None:
        self._store: dict[str, Token] = {}

    async def get(self, key: str) -> Token | None:
        return self._store.get(key)

    async def set(self, key: str, token: Token, decoded: dict[str, Any]) -> None:
        self._store[key] = token

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def flush(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


# ── File ──────────────────────────────────────────────────────────────────────

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]")


class FileTokenCache:
    """One ``oauth-token-{key}.json`` file per key. The directory is created on first write."""

    prefix = "oauth-token-"

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{self.prefix}{_UNSAFE_FILENAME.sub('_', key)}.json"

    async def get(self, key: str) -> Token | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return Token.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            log.warning("token_cache.file.unreadable", path=str(path), error=str(exc))
            await self.delete(key)
            return None

    async def set(self, key: str, token: Token, decoded: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(token.model_dump_json(), encoding="utf-8")
        tmp.replace(path)
        log.debug("token_cache.file.stored", path=str(path))

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def flush(self) -> None:
        if not self.directory.is_dir():
            return
        for path in self.directory.glob(f"{self.prefix}*.json"):
            path.unlink(missing_ok=True)


# ── Redis ─────────────────────────────────────────────────────────────────────

class RedisTokenCache:
    """Shared token store. Entries expire in Redis when the token does."""

    key_prefix = "camunda:oauth:"

    def __init__(
        self,
        url: str | None = None,
        *,
        client: Any = None,
        clock: Clock | None = None,
    ) -> None:
        if client is None:
            import redis.asyncio as aioredis
            client = aioredis.from_url(url, decode_responses=True)
        self._redis = client
        self._clock = clock or get_clock()

    async def get(self, key: str) -> Token | None:
        raw = await self._redis.get(self.key_prefix + key)
        if raw is None:
            return None
        try:
            return Token.model_validate_json(raw)
        except ValidationError as exc:
            log.warning("token_cache.redis.unreadable", key=key, error=str(exc))
            await self.delete(key)
            return None

    async def set(self, key: str, token: Token, decoded: dict[str, Any]) -> None:
        exp = decoded.get("exp", token.expiry)
        ttl = int(exp - self._clock.timestamp())
        if ttl <= 0:
            return
        await self._redis.setex(self.key_prefix + key, ttl, token.model_dump_json())

    async def delete(self, key: str) -> None:
        await self._redis.delete(self.key_prefix + key)

    async def flush(self) -> None:
        keys = [key async for key in self._redis.scan_iter(match=f"{self.key_prefix}*")]
        if keys:
            await self._redis.delete(*keys)


# ── Factory ───────────────────────────────────────────────────────────────────

def get_token_cache(config: CamundaSdkConfig) -> TokenCache | None:
    """Select the durable store for *config*, or None when disabled."""
    if config.token_disk_cache_disable:
        return None
    if config.token_cache_redis_url:
        return RedisTokenCache(config.token_cache_redis_url)
    return FileTokenCache(config.token_cache_dir)


__all__ = [
    "Token", "TokenCache", "MemoryTokenCache", "FileTokenCache",
    "RedisTokenCache", "get_token_cache",
]
