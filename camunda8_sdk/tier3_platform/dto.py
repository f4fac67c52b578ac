"""
camunda8_sdk.tier3_platform.dto
─────────────────────────────────
Wire shapes of the Camunda 8 REST API v2. Entity keys are 64-bit integers on
the wire and are decoded as exact decimal strings (INT64_STRING).

The two specialised envelopes, activated jobs and create-process-instance
responses, carry application-shaped payloads; use job_schema() and
process_instance_schema() to combine them with your own variable schemas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from camunda8_sdk.tier1_runtime.factories import SpecialisedSchemaFactory
from camunda8_sdk.tier1_runtime.schema import INT64_STRING, LosslessDto, Schema

if TYPE_CHECKING:
    from camunda8_sdk.tier3_platform.rest_client import CamundaRestClient

JOB_ACTION_ACKNOWLEDGEMENT = "JOB_ACTION_ACKNOWLEDGEMENT"


# ── Response schemas ──────────────────────────────────────────────────────────

REST_API_JOB = Schema("RestApiJob", {
    "key": INT64_STRING,
    "processInstanceKey": INT64_STRING,
    "processDefinitionKey": INT64_STRING,
    "elementInstanceKey": INT64_STRING,
    "deadline": INT64_STRING,
})

CREATE_PROCESS_INSTANCE_RESPONSE = Schema("CreateProcessInstanceResponse", {
    "processDefinitionKey": INT64_STRING,
    "processInstanceKey": INT64_STRING,
})

BROADCAST_SIGNAL_RESPONSE = Schema("BroadcastSignalResponse", {
    "signalKey": INT64_STRING,
})

CORRELATE_MESSAGE_RESPONSE = Schema("CorrelateMessageResponse", {
    "key": INT64_STRING,
    "processInstanceKey": INT64_STRING,
})

PUBLISH_MESSAGE_RESPONSE = Schema("PublishMessageResponse", {
    "key": INT64_STRING,
})


# ── Specialised envelopes ─────────────────────────────────────────────────────

job_schema_factory = SpecialisedSchemaFactory(REST_API_JOB, ("variables", "customHeaders"))
process_instance_schema_factory = SpecialisedSchemaFactory(
    CREATE_PROCESS_INSTANCE_RESPONSE, ("variables",)
)


def job_schema(variables: Schema | None = None, custom_headers: Schema | None = None) -> Schema:
    return job_schema_factory.get_or_create(variables, custom_headers)


def process_instance_schema(variables: Schema | None = None) -> Schema:
    return process_instance_schema_factory.get_or_create(variables)


# ── Activated job ─────────────────────────────────────────────────────────────

def _payload(value: Any) -> Any:
    # An empty object decoded against a schema keeps that schema.
    return LosslessDto() if value is None else value


@dataclass
class Job:
    """An activated job, bound to the client that activated it."""

    key: str
    type: str
    process_instance_key: str
    process_definition_id: str
    process_definition_version: int
    process_definition_key: str
    element_id: str
    element_instance_key: str
    custom_headers: LosslessDto
    worker: str
    retries: int
    deadline: str
    variables: LosslessDto
    tenant_id: str | None = None
    _client: "CamundaRestClient | None" = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dto(cls, dto: LosslessDto, client: "CamundaRestClient | None" = None) -> "Job":
        return cls(
            key=dto["key"],
            type=dto.get("type", ""),
            process_instance_key=dto.get("processInstanceKey"),
            process_definition_id=dto.get("processDefinitionId"),
            process_definition_version=dto.get("processDefinitionVersion"),
            process_definition_key=dto.get("processDefinitionKey"),
            element_id=dto.get("elementId"),
            element_instance_key=dto.get("elementInstanceKey"),
            custom_headers=_payload(dto.get("customHeaders")),
            worker=dto.get("worker"),
            retries=dto.get("retries", 0),
            deadline=dto.get("deadline"),
            variables=_payload(dto.get("variables")),
            tenant_id=dto.get("tenantId"),
            _client=client,
        )

    @property
    def client(self) -> "CamundaRestClient":
        if self._client is None:
            raise RuntimeError(f"Job {self.key} is not bound to a REST client")
        return self._client

    async def complete(self, variables: Any = None) -> str:
        return await self.client.complete_job(self.key, variables=variables)

    async def fail(
        self,
        error_message: str | None = None,
        retries: int | None = None,
        retry_back_off: int = 0,
        variables: Any = None,
    ) -> str:
        """Fail the job. Retries default to one fewer than the job has left."""
        return await self.client.fail_job(
            self.key,
            retries=self.retries - 1 if retries is None else retries,
            error_message=error_message,
            retry_back_off=retry_back_off,
            variables=variables,
        )

    async def error(
        self,
        error_code: str,
        error_message: str | None = None,
        variables: Any = None,
    ) -> str:
        """Throw a BPMN error from this job."""
        return await self.client.error_job(
            self.key,
            error_code=error_code,
            error_message=error_message,
            variables=variables,
        )

    def forward(self) -> str:
        """Acknowledge without an API call; another system will complete the job."""
        return JOB_ACTION_ACKNOWLEDGEMENT

    async def modify_job_timeout(self, new_timeout_ms: int) -> None:
        await self.client.update_job(self.key, timeout=new_timeout_ms)


__all__ = [
    "JOB_ACTION_ACKNOWLEDGEMENT", "REST_API_JOB", "CREATE_PROCESS_INSTANCE_RESPONSE",
    "BROADCAST_SIGNAL_RESPONSE", "CORRELATE_MESSAGE_RESPONSE", "PUBLISH_MESSAGE_RESPONSE",
    "job_schema_factory", "process_instance_schema_factory", "job_schema",
    "process_instance_schema", "Job",
]
