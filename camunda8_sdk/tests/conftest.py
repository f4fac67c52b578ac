"""
camunda8_sdk test configuration.

All tests run offline: HTTP goes through httpx.MockTransport, tokens are
minted locally with PyJWT, and durable token caches live in tmp_path.
"""
from __future__ import annotations

import json
import os
import time
from typing import Any, Callable

import httpx
import jwt
import pytest

# ── Quiet, cache-free defaults ─────────────────────────────────────────────
# These must be set before any camunda8_sdk modules are imported.

os.environ.setdefault("CAMUNDA_LOG_LEVEL", "error")
os.environ.setdefault("CAMUNDA_TOKEN_DISK_CACHE_DISABLE", "true")

_SDK_ENV_PREFIXES = ("ZEEBE_", "CAMUNDA_")
_KEEP = {"CAMUNDA_LOG_LEVEL", "CAMUNDA_LOG_FORMAT", "CAMUNDA_TOKEN_DISK_CACHE_DISABLE"}

SIGNING_KEY = "camunda8-sdk-test-signing-key-0123456789abcdef"


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """
    Drop any Camunda settings inherited from the developer's shell and reset
    the cached config, so each test builds its own configuration.
    """
    from camunda8_sdk.tier0_core.config import _reset_config

    for name in list(os.environ):
        if name.upper().startswith(_SDK_ENV_PREFIXES) and name.upper() not in _KEEP:
            monkeypatch.delenv(name, raising=False)
    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def make_config():
    """Build a CamundaSdkConfig from env-style overrides, ignoring any .env file."""
    from camunda8_sdk.tier0_core.config import CamundaSdkConfig

    def factory(**overrides: Any) -> CamundaSdkConfig:
        return CamundaSdkConfig(_env_file=None, **overrides)

    return factory


@pytest.fixture
def oauth_config(make_config):
    return make_config(
        CAMUNDA_OAUTH_URL="https://auth.example.com/oauth/token",
        ZEEBE_CLIENT_ID="zeebe-client",
        ZEEBE_CLIENT_SECRET="zeebe-secret",
        ZEEBE_REST_ADDRESS="http://gateway.test:8080",
    )


def mint_token(exp: float | None = None, **claims: Any) -> str:
    """Return an HS256 JWT expiring at *exp* (default: one hour from now)."""
    payload = {"exp": int(exp if exp is not None else time.time() + 3600), **claims}
    return jwt.encode(payload, SIGNING_KEY, algorithm="HS256")


def token_response(access_token: str | None = None, **extra: Any) -> httpx.Response:
    body = {
        "access_token": access_token or mint_token(),
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "",
        **extra,
    }
    return httpx.Response(200, json=body)


def json_response(body: Any, status_code: int = 200, **headers: str) -> httpx.Response:
    """A response whose body is raw JSON text, so large integers stay exact."""
    text = body if isinstance(body, str) else json.dumps(body)
    return httpx.Response(
        status_code,
        content=text.encode(),
        headers={"content-type": "application/json", **headers},
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording)


@pytest.fixture
def mint():
    return mint_token
