"""
camunda8_sdk
────────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from camunda8_sdk.tier0_core.logging import get_logger
from camunda8_sdk.tier0_core.errors import (
    CamundaSdkError,
    AuthError,
    ConfigurationError,
    MissingConfigurationError,
    TokenEndpointError,
    RestApiError,
    DrainTimeoutError,
    LosslessJsonError,
    ShapeMismatchError,
    TypeMismatchError,
    UnsafeNumberError,
    UnsupportedTypeError,
)
from camunda8_sdk.tier0_core.config import CamundaSdkConfig, get_config
from camunda8_sdk.tier0_core.http import SDK_VERSION

from camunda8_sdk.tier1_runtime.clock import Clock, ManualClock
from camunda8_sdk.tier1_runtime.schema import (
    Schema,
    LosslessDto,
    FieldDirective,
    nested,
    INT64_STRING,
    INT64_STRING_ARRAY,
    BIGINT,
    BIGINT_ARRAY,
)
from camunda8_sdk.tier1_runtime.lossless_json import (
    LosslessNumber,
    lossless_parse,
    lossless_stringify,
)
from camunda8_sdk.tier1_runtime.factories import SpecialisedSchemaFactory

from camunda8_sdk.tier2_reliability.token_cache import (
    Token,
    MemoryTokenCache,
    FileTokenCache,
    RedisTokenCache,
)

from camunda8_sdk.tier3_platform.oauth import (
    TokenGrantAudience,
    OAuthProvider,
    NullAuthProvider,
    BasicAuthProvider,
    construct_oauth_provider,
)
from camunda8_sdk.tier3_platform.dto import Job, JOB_ACTION_ACKNOWLEDGEMENT
from camunda8_sdk.tier3_platform.rest_client import CamundaRestClient

from camunda8_sdk.tier4_advanced.job_worker import CamundaJobWorker, JobWorkerConfig

__version__ = SDK_VERSION
__all__ = [
    # logging
    "get_logger",
    # errors
    "CamundaSdkError", "AuthError", "ConfigurationError", "MissingConfigurationError",
    "TokenEndpointError", "RestApiError", "DrainTimeoutError", "LosslessJsonError",
    "ShapeMismatchError", "TypeMismatchError", "UnsafeNumberError", "UnsupportedTypeError",
    # config
    "CamundaSdkConfig", "get_config",
    # clock
    "Clock", "ManualClock",
    # lossless json
    "Schema", "LosslessDto", "FieldDirective", "nested",
    "INT64_STRING", "INT64_STRING_ARRAY", "BIGINT", "BIGINT_ARRAY",
    "LosslessNumber", "lossless_parse", "lossless_stringify", "SpecialisedSchemaFactory",
    # token caches
    "Token", "MemoryTokenCache", "FileTokenCache", "RedisTokenCache",
    # auth
    "TokenGrantAudience", "OAuthProvider", "NullAuthProvider", "BasicAuthProvider",
    "construct_oauth_provider",
    # rest
    "CamundaRestClient", "Job", "JOB_ACTION_ACKNOWLEDGEMENT",
    # worker
    "CamundaJobWorker", "JobWorkerConfig",
]
