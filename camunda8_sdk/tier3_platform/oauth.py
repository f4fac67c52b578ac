"""
camunda8_sdk.tier3_platform.oauth
───────────────────────────────────
Bearer-token providers for the Camunda 8 APIs.

OAuthProvider runs the client-credentials grant against CAMUNDA_OAUTH_URL
and caches tokens per audience, in memory and optionally in a durable
TokenCache. Concurrent get_token() calls share one in-flight request; after
a failed request, the next attempt waits failure_count × backoff_unit.

NullAuthProvider and BasicAuthProvider implement the same get_token()
contract for deployments without OAuth.

Configure via: CAMUNDA_AUTH_STRATEGY=OAUTH|BASIC|NONE, CAMUNDA_OAUTH_DISABLED
"""
from __future__ import annotations

import asyncio
import base64
import json
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import httpx
import jwt

from camunda8_sdk.tier0_core.config import (
    CamundaSdkConfig,
    load_config,
    require_configuration,
)
from camunda8_sdk.tier0_core.errors import ConfigurationError, TokenEndpointError
from camunda8_sdk.tier0_core.http import ContentType, ssl_context, user_agent
from camunda8_sdk.tier0_core.logging import get_logger
from camunda8_sdk.tier1_runtime.clock import Clock, get_clock
from camunda8_sdk.tier2_reliability.token_cache import Token, TokenCache, get_token_cache

log = get_logger(__name__)

SAAS_TOKEN_URL = "https://login.cloud.camunda.io/oauth/token"
SAAS_CONSOLE_AUDIENCE = "api.cloud.camunda.io"


class TokenGrantAudience(str, Enum):
    OPERATE = "OPERATE"
    ZEEBE = "ZEEBE"
    OPTIMIZE = "OPTIMIZE"
    TASKLIST = "TASKLIST"
    CONSOLE = "CONSOLE"
    MODELER = "MODELER"


# ── Interface ─────────────────────────────────────────────────────────────────

@runtime_checkable
class AuthProvider(Protocol):
    scheme: str

    async def get_token(self, audience: TokenGrantAudience | str) -> str: ...


# ── OAuth ─────────────────────────────────────────────────────────────────────

class OAuthProvider:
    """
    Client-credentials token provider.

    Usage::

        provider = OAuthProvider(config)
        token = await provider.get_token("ZEEBE")
    """

    scheme = "Bearer"

    def __init__(
        self,
        config: CamundaSdkConfig | None = None,
        *,
        token_cache: TokenCache | None = None,
        http: httpx.AsyncClient | None = None,
        clock: Clock | None = None,
        backoff_unit: float = 1.0,
    ) -> None:
        config = load_config(config)
        self.auth_server_url: str = require_configuration(config.oauth_url, "CAMUNDA_OAUTH_URL")
        self.client_id = config.client_id
        self.client_secret = config.client_secret
        self.console_client_id = config.console_client_id
        self.console_client_secret = config.console_client_secret

        if not self.client_id and not self.console_client_id:
            raise ConfigurationError(
                user_message=(
                    "You need to supply a value for at least one of ZEEBE_CLIENT_ID "
                    "or CAMUNDA_CONSOLE_CLIENT_ID"
                )
            )
        if not self.client_secret and not self.console_client_secret:
            raise ConfigurationError(
                user_message=(
                    "You need to supply a value for at least one of ZEEBE_CLIENT_SECRET "
                    "or CAMUNDA_CONSOLE_CLIENT_SECRET"
                )
            )
        if not (
            (self.client_id and self.client_secret)
            or (self.console_client_id and self.console_client_secret)
        ):
            raise ConfigurationError(
                user_message="You need to supply both a client ID and a client secret"
            )

        self.scope = config.token_scope
        self.refresh_window_ms = config.token_refresh_threshold_ms
        self.is_saas = SAAS_TOKEN_URL in self.auth_server_url
        self.modeler_audience = config.modeler_audience
        self.audience_map: dict[TokenGrantAudience, str | None] = {
            TokenGrantAudience.OPERATE: config.operate_audience,
            TokenGrantAudience.ZEEBE: config.zeebe_audience,
            TokenGrantAudience.OPTIMIZE: config.optimize_audience,
            TokenGrantAudience.TASKLIST: config.tasklist_audience,
            TokenGrantAudience.CONSOLE: config.console_audience,
            TokenGrantAudience.MODELER: config.modeler_audience,
        }
        self.user_agent = user_agent(config.custom_user_agent_string)
        self.token_cache = token_cache
        self.backoff_unit = backoff_unit
        self._clock = clock or get_clock()

        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(verify=ssl_context(config), timeout=30.0)

        self._memory: dict[str, Token] = {}
        self._inflight: asyncio.Task[str] | None = None
        self.failed = False
        self.failure_count = 0

    # ── Public API ────────────────────────────────────────────────────────────

    async def get_token(self, audience: TokenGrantAudience | str) -> str:
        audience = TokenGrantAudience(audience)
        client_id, client_secret = self._credentials_for(audience)
        now_ms = self._clock.timestamp_ms()

        key = self._memory_key(audience)
        token = self._memory.get(key)
        if token is not None:
            if self.is_token_expired(token, self.refresh_window_ms, now_ms):
                log.debug("oauth.token.memory_expired", audience=audience.value)
                del self._memory[key]
            else:
                return token.access_token

        if self.token_cache is not None:
            durable_key = f"{client_id}-{audience.value}"
            cached = await self.token_cache.get(durable_key)
            if cached is not None:
                if self.is_token_expired(cached, self.refresh_window_ms, now_ms):
                    log.debug("oauth.token.durable_expired", audience=audience.value)
                    await self.token_cache.delete(durable_key)
                else:
                    return cached.access_token

        # One request per provider; every concurrent caller joins it.
        if self._inflight is None:
            delay = self.backoff_unit * self.failure_count if self.failed else 0.0
            self._inflight = asyncio.get_running_loop().create_task(
                self._request_token(audience, client_id, client_secret, delay)
            )
        return await asyncio.shield(self._inflight)

    def flush_memory_cache(self) -> None:
        self._memory.clear()

    async def flush_file_cache(self) -> None:
        if self.token_cache is not None:
            await self.token_cache.flush()

    @staticmethod
    def is_token_expired(token: Token, refresh_window_ms: int, now_ms: int) -> bool:
        """True once now is within *refresh_window_ms* of the token's expiry."""
        return now_ms >= token.expiry * 1000 - refresh_window_ms

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _memory_key(self, audience: TokenGrantAudience) -> str:
        return f"{self.client_id}-{audience.value}"

    def _credentials_for(self, audience: TokenGrantAudience) -> tuple[str, str]:
        if self.is_saas and audience in (TokenGrantAudience.CONSOLE, TokenGrantAudience.MODELER):
            return (
                require_configuration(self.console_client_id, "CAMUNDA_CONSOLE_CLIENT_ID"),
                require_configuration(self.console_client_secret, "CAMUNDA_CONSOLE_CLIENT_SECRET"),
            )
        return (
            require_configuration(self.client_id, "ZEEBE_CLIENT_ID"),
            require_configuration(self.client_secret, "ZEEBE_CLIENT_SECRET"),
        )

    def audience_param(self, audience: TokenGrantAudience) -> str | None:
        """The ``audience`` form value for *audience*, or None to omit it."""
        if audience is TokenGrantAudience.MODELER:
            if self.is_saas:
                return SAAS_CONSOLE_AUDIENCE
            if not self.modeler_audience:
                return None
        return self.audience_map.get(audience) or None

    async def _request_token(
        self,
        audience: TokenGrantAudience,
        client_id: str,
        client_secret: str,
        delay: float,
    ) -> str:
        try:
            if delay:
                log.info("oauth.token.backoff", delay_s=delay, failure_count=self.failure_count)
                await asyncio.sleep(delay)
            access_token = await self._fetch_token(audience, client_id, client_secret)
        except Exception:
            self.failure_count += 1
            self.failed = True
            raise
        else:
            self.failed = False
            self.failure_count = 0
            return access_token
        finally:
            self._inflight = None

    async def _fetch_token(
        self,
        audience: TokenGrantAudience,
        client_id: str,
        client_secret: str,
    ) -> str:
        form: dict[str, str] = {}
        audience_value = self.audience_param(audience)
        if audience_value:
            form["audience"] = audience_value
        form["client_id"] = client_id
        form["client_secret"] = client_secret
        form["grant_type"] = "client_credentials"
        if self.scope:
            form["scope"] = self.scope

        log.debug("oauth.token.request", url=self.auth_server_url, audience=audience.value)
        try:
            response = await self._http.post(
                self.auth_server_url,
                data=form,
                headers={
                    "content-type": ContentType.FORM,
                    "user-agent": self.user_agent,
                    "accept": "*/*",
                },
            )
        except httpx.HTTPError as exc:
            log.error("oauth.token.transport_error", client_id=client_id, error=str(exc))
            raise TokenEndpointError(
                user_message=f"Failed to get token: {exc}",
                audience=audience.value,
            ) from exc

        body = _json_or_none(response)
        if isinstance(body, dict) and body.get("error"):
            log.error("oauth.token.error_response", client_id=client_id, error=body["error"])
            raise TokenEndpointError(
                user_message=(
                    f"Failed to get token: {body['error']} - {body.get('error_description')}"
                ),
                audience=audience.value,
                http_status=response.status_code,
            )
        if response.is_error:
            log.error("oauth.token.http_error", client_id=client_id, status=response.status_code)
            raise TokenEndpointError(
                user_message=f"Failed to get token: HTTP {response.status_code}",
                audience=audience.value,
                http_status=response.status_code,
            )
        if not isinstance(body, dict) or "access_token" not in body:
            raise TokenEndpointError(
                user_message="Failed to get token: no access_token in response",
                audience=audience.value,
            )

        try:
            claims: dict[str, Any] = jwt.decode(
                body["access_token"], options={"verify_signature": False}
            )
        except jwt.PyJWTError as exc:
            raise TokenEndpointError(
                user_message=f"Failed to get token: access_token is not a JWT ({exc})",
                audience=audience.value,
            ) from exc

        token = Token.model_validate(
            {**body, "audience": audience.value, "expiry": int(claims.get("exp") or 0)}
        )
        self._memory[self._memory_key(audience)] = token
        if self.token_cache is not None:
            await self.token_cache.set(f"{client_id}-{audience.value}", token, claims)
        log.debug("oauth.token.cached", audience=audience.value, expiry=token.expiry)
        return token.access_token


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return json.loads(response.text)
    except json.JSONDecodeError:
        return None


# ── Alternate providers ───────────────────────────────────────────────────────

class NullAuthProvider:
    """For deployments with auth disabled. Always returns an empty token."""

    scheme = "Bearer"

    async def get_token(self, audience: TokenGrantAudience | str) -> str:
        return ""


class BasicAuthProvider:
    """Static HTTP basic credentials from CAMUNDA_BASIC_AUTH_USERNAME/PASSWORD."""

    scheme = "Basic"

    def __init__(self, config: CamundaSdkConfig | None = None) -> None:
        config = load_config(config)
        username = require_configuration(config.basic_auth_username, "CAMUNDA_BASIC_AUTH_USERNAME")
        password = require_configuration(config.basic_auth_password, "CAMUNDA_BASIC_AUTH_PASSWORD")
        self._token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")

    async def get_token(self, audience: TokenGrantAudience | str) -> str:
        return self._token


def construct_oauth_provider(
    config: CamundaSdkConfig | None = None,
    **kwargs: Any,
) -> AuthProvider:
    """Pick the provider for the configured auth strategy."""
    config = load_config(config)
    if config.oauth_disabled or config.auth_strategy == "NONE":
        log.debug("oauth.strategy", strategy="NONE")
        return NullAuthProvider()
    if config.auth_strategy == "BASIC":
        log.debug("oauth.strategy", strategy="BASIC")
        return BasicAuthProvider(config)
    log.debug("oauth.strategy", strategy="OAUTH")
    kwargs.setdefault("token_cache", get_token_cache(config))
    return OAuthProvider(config, **kwargs)


__all__ = [
    "TokenGrantAudience", "AuthProvider", "OAuthProvider", "NullAuthProvider",
    "BasicAuthProvider", "construct_oauth_provider",
]
