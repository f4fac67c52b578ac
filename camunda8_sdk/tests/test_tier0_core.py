"""Tests for tier0_core modules."""
from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError as PydanticValidationError

from camunda8_sdk.tier0_core.config import (
    CamundaSdkConfig,
    get_config,
    load_config,
    require_configuration,
)
from camunda8_sdk.tier0_core.errors import (
    AuthError,
    CamundaSdkError,
    ConfigurationError,
    DrainTimeoutError,
    MissingConfigurationError,
    RestApiError,
    TokenEndpointError,
    UnsafeNumberError,
    UpstreamError,
)
from camunda8_sdk.tier0_core.http import is_problem_json, read_problem, user_agent
from camunda8_sdk.tier0_core.logging import _redact_processor, get_logger, truncate_secret


# ── errors ─────────────────────────────────────────────────────────────────

class TestErrors:
    def test_base_error_to_dict(self):
        err = CamundaSdkError(user_message="boom")
        assert err.to_dict() == {"error": {"code": "internal_error", "message": "boom"}}

    def test_metadata_in_to_dict(self):
        err = CamundaSdkError(user_message="boom", job_key="1")
        assert err.to_dict()["error"]["metadata"] == {"job_key": "1"}

    def test_subclass_codes(self):
        assert TokenEndpointError(user_message="x").code == "token_endpoint_error"
        assert isinstance(TokenEndpointError(user_message="x"), AuthError)
        assert isinstance(RestApiError("x"), UpstreamError)

    def test_missing_configuration_message(self):
        err = MissingConfigurationError("CAMUNDA_OAUTH_URL")
        assert isinstance(err, ConfigurationError)
        assert err.key == "CAMUNDA_OAUTH_URL"
        assert str(err) == (
            "Missing required configuration CAMUNDA_OAUTH_URL. Please supply this "
            "value as an environment variable or configuration object field."
        )

    def test_drain_timeout_names_deadline(self):
        err = DrainTimeoutError(1500, active_jobs=2)
        assert str(err) == "Failed to drain all jobs in 1500ms"
        assert err.active_jobs == 2

    def test_unsafe_number_names_path_and_text(self):
        err = UnsafeNumberError("jobs[0].count", "9223372036854775807", "truncate_integer")
        assert "jobs[0].count" in str(err)
        assert "9223372036854775807" in str(err)
        assert err.reason == "truncate_integer"

    def test_rest_api_error_status(self):
        err = RestApiError("nope", status_code=404, problem={"detail": "missing"})
        assert err.status_code == 404
        assert err.detail_text == "missing"


# ── config ─────────────────────────────────────────────────────────────────

class TestConfig:
    def test_defaults(self, make_config):
        config = make_config()
        assert config.zeebe_rest_address == "http://localhost:8080"
        assert config.rest_base_url == "http://localhost:8080/v2/"
        assert config.auth_strategy == "OAUTH"
        assert config.zeebe_audience == "zeebe.camunda.io"
        assert config.modeler_audience is None
        assert config.token_refresh_threshold_ms == 1000

    def test_reads_environment(self, monkeypatch, make_config):
        monkeypatch.setenv("ZEEBE_REST_ADDRESS", "http://gateway:8080/")
        monkeypatch.setenv("CAMUNDA_TENANT_ID", "tenant-a")
        config = make_config()
        assert config.zeebe_rest_address == "http://gateway:8080"
        assert config.tenant_id == "tenant-a"

    def test_client_id_alias(self, monkeypatch, make_config):
        monkeypatch.setenv("CAMUNDA_CLIENT_ID", "alias-id")
        monkeypatch.setenv("CAMUNDA_CLIENT_SECRET", "alias-secret")
        config = make_config()
        assert config.client_id == "alias-id"
        assert config.client_secret == "alias-secret"

    def test_keyword_overrides_use_env_names(self, make_config):
        config = make_config(ZEEBE_CLIENT_ID="kw-id", CAMUNDA_AUTH_STRATEGY="basic")
        assert config.client_id == "kw-id"
        assert config.auth_strategy == "BASIC"

    def test_invalid_auth_strategy(self, make_config):
        with pytest.raises(PydanticValidationError):
            make_config(CAMUNDA_AUTH_STRATEGY="kerberos")

    def test_log_level_normalised(self, make_config):
        assert make_config(CAMUNDA_LOG_LEVEL="WARNING").log_level == "warn"
        assert make_config(CAMUNDA_LOG_LEVEL="Trace").log_level == "trace"

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_load_config_prefers_explicit(self, make_config):
        config = make_config()
        assert load_config(config) is config
        assert isinstance(load_config(CAMUNDA_TENANT_ID="t"), CamundaSdkConfig)

    def test_require_configuration(self):
        assert require_configuration("value", "KEY") == "value"
        with pytest.raises(MissingConfigurationError):
            require_configuration(None, "KEY")
        with pytest.raises(MissingConfigurationError):
            require_configuration("", "KEY")


# ── http ───────────────────────────────────────────────────────────────────

class TestHttp:
    def test_user_agent(self):
        assert user_agent().startswith("camunda8-sdk-python/")
        assert user_agent("my-app/1.0").endswith(" my-app/1.0")

    def test_problem_json(self):
        response = httpx.Response(
            400,
            json={"title": "Bad", "detail": "no such job"},
            headers={"content-type": "application/problem+json"},
        )
        assert is_problem_json(response)
        assert read_problem(response)["detail"] == "no such job"

    def test_read_problem_tolerates_garbage(self):
        response = httpx.Response(500, content=b"<html>", headers={"content-type": "text/html"})
        assert not is_problem_json(response)
        assert read_problem(response) == {}


# ── logging ────────────────────────────────────────────────────────────────

class TestLogging:
    def test_redacts_secrets(self):
        event = _redact_processor(None, "info", {"event": "x", "client_secret": "s", "token": "t"})
        assert event["client_secret"] == "[REDACTED]"
        assert event["token"] == "[REDACTED]"
        assert event["event"] == "x"

    def test_truncate_secret(self):
        assert truncate_secret("Bearer abcdefghijklmnopqrstuvwxyz") == "Bearer abcdefgh..."
        assert truncate_secret("short") == "short"
        assert truncate_secret(None) is None

    def test_get_logger_binds(self):
        log = get_logger("camunda8_sdk.test").bind(worker="w")
        log.info("test.event", job_key="1")
