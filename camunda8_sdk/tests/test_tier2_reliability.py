"""Tests for tier2_reliability: durable token caches."""
from __future__ import annotations

import fnmatch

import pytest

from camunda8_sdk.tier1_runtime.clock import ManualClock
from camunda8_sdk.tier2_reliability.token_cache import (
    FileTokenCache,
    MemoryTokenCache,
    RedisTokenCache,
    Token,
    TokenCache,
    get_token_cache,
)


def _token(expiry: int = 2_000_000_000, audience: str = "ZEEBE") -> Token:
    return Token(access_token="abc.def.ghi", expiry=expiry, audience=audience, expires_in=3600)


class FakeRedis:
    """Just enough of the redis client API for RedisTokenCache."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match="*"):
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key


# ── memory ─────────────────────────────────────────────────────────────────

class TestMemoryTokenCache:
    @pytest.mark.asyncio
    async def test_set_get_delete_flush(self):
        cache = MemoryTokenCache()
        assert isinstance(cache, TokenCache)
        await cache.set("id-ZEEBE", _token(), {})
        assert (await cache.get("id-ZEEBE")).access_token == "abc.def.ghi"
        await cache.delete("id-ZEEBE")
        assert await cache.get("id-ZEEBE") is None
        await cache.set("a", _token(), {})
        await cache.flush()
        assert len(cache) == 0


# ── file ───────────────────────────────────────────────────────────────────

class TestFileTokenCache:
    @pytest.mark.asyncio
    async def test_directory_created_lazily(self, tmp_path):
        directory = tmp_path / "tokens"
        cache = FileTokenCache(directory)
        assert await cache.get("id-ZEEBE") is None
        assert not directory.exists()
        await cache.set("id-ZEEBE", _token(), {"exp": 2_000_000_000})
        assert (directory / "oauth-token-id-ZEEBE.json").exists()

    @pytest.mark.asyncio
    async def test_round_trip_survives_new_instance(self, tmp_path):
        await FileTokenCache(tmp_path).set("id-OPERATE", _token(audience="OPERATE"), {})
        token = await FileTokenCache(tmp_path).get("id-OPERATE")
        assert token == _token(audience="OPERATE")

    @pytest.mark.asyncio
    async def test_unsafe_key_characters(self, tmp_path):
        cache = FileTokenCache(tmp_path)
        await cache.set("a/b c-ZEEBE", _token(), {})
        assert (tmp_path / "oauth-token-a_b_c-ZEEBE.json").exists()
        assert await cache.get("a/b c-ZEEBE") is not None

    @pytest.mark.asyncio
    async def test_corrupt_file_is_a_miss_and_removed(self, tmp_path):
        path = tmp_path / "oauth-token-id-ZEEBE.json"
        path.write_text("{not json")
        cache = FileTokenCache(tmp_path)
        assert await cache.get("id-ZEEBE") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_flush_only_removes_token_files(self, tmp_path):
        cache = FileTokenCache(tmp_path)
        await cache.set("a-ZEEBE", _token(), {})
        await cache.set("b-ZEEBE", _token(), {})
        (tmp_path / "unrelated.txt").write_text("keep")
        await cache.flush()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["unrelated.txt"]


# ── redis ──────────────────────────────────────────────────────────────────

class TestRedisTokenCache:
    @pytest.mark.asyncio
    async def test_ttl_from_exp_claim(self):
        fake = FakeRedis()
        cache = RedisTokenCache(client=fake, clock=ManualClock(1_000))
        await cache.set("id-ZEEBE", _token(expiry=1_300), {"exp": 1_300})
        assert fake.ttls["camunda:oauth:id-ZEEBE"] == 300
        assert await cache.get("id-ZEEBE") == _token(expiry=1_300)

    @pytest.mark.asyncio
    async def test_expired_token_not_stored(self):
        fake = FakeRedis()
        cache = RedisTokenCache(client=fake, clock=ManualClock(2_000))
        await cache.set("id-ZEEBE", _token(expiry=1_500), {"exp": 1_500})
        assert fake.data == {}

    @pytest.mark.asyncio
    async def test_flush_only_prefixed_keys(self):
        fake = FakeRedis()
        fake.data["other"] = "x"
        cache = RedisTokenCache(client=fake, clock=ManualClock(0))
        await cache.set("a-ZEEBE", _token(expiry=100), {"exp": 100})
        await cache.flush()
        assert fake.data == {"other": "x"}

    @pytest.mark.asyncio
    async def test_unreadable_value_removed(self):
        fake = FakeRedis()
        fake.data["camunda:oauth:id-ZEEBE"] = '{"nope": 1}'
        cache = RedisTokenCache(client=fake)
        assert await cache.get("id-ZEEBE") is None
        assert "camunda:oauth:id-ZEEBE" not in fake.data


# ── factory ────────────────────────────────────────────────────────────────

class TestGetTokenCache:
    def test_disabled(self, make_config):
        assert get_token_cache(make_config(CAMUNDA_TOKEN_DISK_CACHE_DISABLE="true")) is None

    def test_file_by_default(self, make_config, tmp_path):
        cache = get_token_cache(make_config(
            CAMUNDA_TOKEN_DISK_CACHE_DISABLE="false", CAMUNDA_TOKEN_CACHE_DIR=str(tmp_path),
        ))
        assert isinstance(cache, FileTokenCache)
        assert cache.directory == tmp_path

    def test_redis_when_url_set(self, make_config):
        cache = get_token_cache(make_config(
            CAMUNDA_TOKEN_DISK_CACHE_DISABLE="false",
            CAMUNDA_TOKEN_CACHE_REDIS_URL="redis://localhost:6379/0",
        ))
        assert isinstance(cache, RedisTokenCache)
