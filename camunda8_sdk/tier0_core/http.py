"""
camunda8_sdk.tier0_core.http
─────────────────────────────
HTTP primitives shared by the token provider and the REST client: content
types, the SDK user-agent string and a helper to read problem+json bodies.

Minimal stack: httpx
"""
from __future__ import annotations

import json
import ssl
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from camunda8_sdk.tier0_core.config import CamundaSdkConfig

SDK_VERSION = "0.1.0"


class ContentType:
    """Content types used on the wire."""

    JSON = "application/json"
    PROBLEM_JSON = "application/problem+json"
    FORM = "application/x-www-form-urlencoded"
    MULTIPART = "multipart/form-data"


def user_agent(custom: str | None = None) -> str:
    """
    Return the SDK user agent, with an optional application suffix
    (CAMUNDA_CUSTOM_USER_AGENT_STRING).
    """
    base = f"camunda8-sdk-python/{SDK_VERSION}"
    return f"{base} {custom}" if custom else base


def ssl_context(config: "CamundaSdkConfig") -> ssl.SSLContext | bool:
    """
    TLS settings for outbound clients: a custom root CA and, for mutual TLS,
    a client certificate chain and private key. Returns True (httpx default
    verification) when nothing is customised.
    """
    if not (
        config.custom_root_cert_path
        or config.custom_cert_chain_path
        or config.custom_private_key_path
    ):
        return True
    context = ssl.create_default_context(cafile=config.custom_root_cert_path)
    if config.custom_cert_chain_path:
        context.load_cert_chain(
            certfile=config.custom_cert_chain_path,
            keyfile=config.custom_private_key_path,
        )
    return context


def is_problem_json(response: httpx.Response) -> bool:
    return response.headers.get("content-type", "").startswith(ContentType.PROBLEM_JSON)


def read_problem(response: httpx.Response) -> dict[str, Any]:
    """Decode an RFC 7807 body; an undecodable body yields an empty dict."""
    try:
        body = json.loads(response.text)
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


__all__ = ["SDK_VERSION", "ContentType", "user_agent", "ssl_context", "is_problem_json", "read_problem"]
