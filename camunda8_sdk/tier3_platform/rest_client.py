"""
camunda8_sdk.tier3_platform.rest_client
─────────────────────────────────────────
Async client for the Camunda 8 REST API v2 (``{ZEEBE_REST_ADDRESS}/v2``).

Every request passes through httpx event hooks:
  request  → bearer/basic authorization (audience ZEEBE) and user-agent
             unless already present, JSON content-type unless multipart,
             debug log with the authorization header truncated, then any
             caller-supplied middleware.
  response → 4xx/5xx raise RestApiError; problem+json bodies append their
             ``detail`` to the message.

Bodies are written with lossless_stringify and read with lossless_parse, so
64-bit keys survive the round trip as exact strings.

Usage::

    async with CamundaRestClient() as camunda:
        topology = await camunda.get_topology()
        instance = await camunda.create_process_instance(
            process_definition_id="order-process", variables={"orderId": "A-1"},
        )
"""
from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Callable, Sequence

import httpx

from camunda8_sdk.tier0_core.config import CamundaSdkConfig, load_config
from camunda8_sdk.tier0_core.errors import RestApiError
from camunda8_sdk.tier0_core.http import (
    ContentType,
    is_problem_json,
    read_problem,
    ssl_context,
    user_agent,
)
from camunda8_sdk.tier0_core.logging import get_logger, truncate_secret
from camunda8_sdk.tier1_runtime.lossless_json import lossless_parse, lossless_stringify
from camunda8_sdk.tier1_runtime.schema import Schema
from camunda8_sdk.tier3_platform.dto import (
    BROADCAST_SIGNAL_RESPONSE,
    CORRELATE_MESSAGE_RESPONSE,
    JOB_ACTION_ACKNOWLEDGEMENT,
    PUBLISH_MESSAGE_RESPONSE,
    Job,
    job_schema,
    process_instance_schema,
)
from camunda8_sdk.tier3_platform.oauth import (
    AuthProvider,
    TokenGrantAudience,
    construct_oauth_provider,
)

if TYPE_CHECKING:
    from camunda8_sdk.tier4_advanced.job_worker import CamundaJobWorker

log = get_logger(__name__)

Middleware = Callable[[httpx.Request], Any]

_UNSET: Any = object()


class CamundaRestClient:
    """
    Typed async access to the Camunda 8 REST API.

    ``auth`` defaults to the provider selected by CAMUNDA_AUTH_STRATEGY;
    ``transport`` lets tests substitute an httpx.MockTransport.
    """

    def __init__(
        self,
        config: CamundaSdkConfig | None = None,
        *,
        auth: AuthProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        middleware: Sequence[Middleware] = (),
        timeout: float = 60.0,
    ) -> None:
        self.config = load_config(config)
        self.auth = auth or construct_oauth_provider(self.config)
        self.tenant_id = self.config.tenant_id
        self.user_agent = user_agent(self.config.custom_user_agent_string)
        self._middleware = list(middleware)
        self._http = httpx.AsyncClient(
            base_url=self.config.rest_base_url,
            transport=transport,
            verify=ssl_context(self.config),
            timeout=timeout,
            headers={"user-agent": self.user_agent},
            event_hooks={
                "request": [self._add_headers, self._log_request, self._run_middleware],
                "response": [self._raise_for_error],
            },
        )

    async def __aenter__(self) -> "CamundaRestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()
        closer = getattr(self.auth, "aclose", None)
        if closer is not None:
            await closer()

    # ── Hooks ─────────────────────────────────────────────────────────────────

    async def _add_headers(self, request: httpx.Request) -> None:
        if "authorization" not in request.headers:
            token = await self.auth.get_token(TokenGrantAudience.ZEEBE)
            if token:
                request.headers["authorization"] = f"{self.auth.scheme} {token}"
        if not request.headers.get("content-type", "").startswith(ContentType.MULTIPART):
            request.headers["content-type"] = ContentType.JSON

    async def _log_request(self, request: httpx.Request) -> None:
        log.debug(
            "rest.request",
            method=request.method,
            url=str(request.url),
            auth_header=truncate_secret(request.headers.get("authorization")),
        )

    async def _run_middleware(self, request: httpx.Request) -> None:
        for hook in self._middleware:
            result = hook(request)
            if inspect.isawaitable(result):
                await result

    async def _raise_for_error(self, response: httpx.Response) -> None:
        if not response.is_error:
            return
        await response.aread()
        request = response.request
        message = (
            f"Request failed with status code {response.status_code} "
            f"{response.reason_phrase}: {request.method} {request.url}"
        )
        problem: dict[str, Any] = {}
        if is_problem_json(response):
            problem = read_problem(response)
            message += f' || "{problem.get("detail")}".'
        log.warning("rest.error", status=response.status_code, url=str(request.url))
        raise RestApiError(message, status_code=response.status_code, problem=problem)

    # ── Transport ─────────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        body: Any = _UNSET,
        *,
        schema: Schema | None = None,
        array_key: str | None = None,
    ) -> Any:
        content = None if body is _UNSET else lossless_stringify(body)
        try:
            response = await self._http.request(method, path, content=content)
        except httpx.HTTPError as exc:
            raise RestApiError(
                f"{method} {path} failed: {exc}", path=path,
            ) from exc
        if not response.content:
            return None
        return lossless_parse(response.content, schema, array_key=array_key)

    def _with_tenant(self, body: dict[str, Any]) -> dict[str, Any]:
        if body.get("tenantId") is None:
            if self.tenant_id:
                body["tenantId"] = self.tenant_id
            else:
                body.pop("tenantId", None)
        return body

    # ── Cluster ───────────────────────────────────────────────────────────────

    async def get_topology(self) -> Any:
        return await self._request("GET", "topology")

    async def get_license_status(self) -> Any:
        return await self._request("GET", "license")

    async def pin_internal_clock(self, epoch_ms: int) -> None:
        await self._request("PUT", "clock", {"timestamp": epoch_ms})

    async def reset_clock(self) -> None:
        await self._request("POST", "clock/reset")

    # ── Signals & messages ────────────────────────────────────────────────────

    async def broadcast_signal(
        self,
        signal_name: str,
        variables: Any = None,
        tenant_id: str | None = None,
    ) -> Any:
        body = self._with_tenant({
            "signalName": signal_name,
            "variables": variables or {},
            "tenantId": tenant_id,
        })
        return await self._request("POST", "signals/broadcast", body, schema=BROADCAST_SIGNAL_RESPONSE)

    async def publish_message(
        self,
        name: str,
        correlation_key: str = "",
        variables: Any = None,
        time_to_live: int | None = None,
        message_id: str | None = None,
        tenant_id: str | None = None,
    ) -> Any:
        body = {
            "name": name,
            "correlationKey": correlation_key,
            "variables": variables or {},
            "tenantId": tenant_id,
        }
        if time_to_live is not None:
            body["timeToLive"] = time_to_live
        if message_id is not None:
            body["messageId"] = message_id
        return await self._request(
            "POST", "messages/publication", self._with_tenant(body), schema=PUBLISH_MESSAGE_RESPONSE,
        )

    async def correlate_message(
        self,
        name: str,
        correlation_key: str = "",
        variables: Any = None,
        tenant_id: str | None = None,
    ) -> Any:
        body = self._with_tenant({
            "name": name,
            "correlationKey": correlation_key,
            "variables": variables or {},
            "tenantId": tenant_id,
        })
        return await self._request(
            "POST", "messages/correlation", body, schema=CORRELATE_MESSAGE_RESPONSE,
        )

    # ── User tasks ────────────────────────────────────────────────────────────

    async def complete_user_task(
        self, user_task_key: str, variables: Any = None, action: str = "complete"
    ) -> None:
        await self._request(
            "POST", f"user-tasks/{user_task_key}/completion",
            {"variables": variables or {}, "action": action},
        )

    async def assign_task(
        self,
        user_task_key: str,
        assignee: str,
        allow_override: bool = True,
        action: str = "assign",
    ) -> None:
        await self._request(
            "POST", f"user-tasks/{user_task_key}/assignment",
            {"allowOverride": allow_override, "action": action, "assignee": assignee},
        )

    async def update_task(self, user_task_key: str, changeset: dict[str, Any]) -> None:
        await self._request("PATCH", f"user-tasks/{user_task_key}/update", changeset)

    async def unassign_task(self, user_task_key: str) -> None:
        await self._request("DELETE", f"user-tasks/{user_task_key}/assignee")

    # ── Jobs ──────────────────────────────────────────────────────────────────

    async def activate_jobs(
        self,
        type: str,
        worker: str,
        max_jobs_to_activate: int,
        timeout: int,
        fetch_variable: Sequence[str] | None = None,
        request_timeout: int | None = None,
        tenant_ids: Sequence[str] | None = None,
        input_variable_schema: Schema | None = None,
        custom_headers_schema: Schema | None = None,
    ) -> list[Job]:
        """Activate up to *max_jobs_to_activate* jobs of *type*."""
        if tenant_ids is None and self.tenant_id:
            tenant_ids = [self.tenant_id]
        body: dict[str, Any] = {
            "type": type,
            "worker": worker,
            "timeout": timeout,
            "maxJobsToActivate": max_jobs_to_activate,
        }
        if fetch_variable is not None:
            body["fetchVariable"] = list(fetch_variable)
        if request_timeout is not None:
            body["requestTimeout"] = request_timeout
        if tenant_ids is not None:
            body["tenantIds"] = list(tenant_ids)
        schema = job_schema(input_variable_schema, custom_headers_schema)
        jobs = await self._request("POST", "jobs/activation", body, schema=schema, array_key="jobs")
        return [Job.from_dto(dto, self) for dto in jobs]

    async def complete_job(self, job_key: str, variables: Any = None) -> str:
        await self._request("POST", f"jobs/{job_key}/completion", {"variables": variables or {}})
        return JOB_ACTION_ACKNOWLEDGEMENT

    async def fail_job(
        self,
        job_key: str,
        retries: int,
        error_message: str | None = None,
        retry_back_off: int = 0,
        variables: Any = None,
    ) -> str:
        body: dict[str, Any] = {"retries": retries, "retryBackOff": retry_back_off}
        if error_message is not None:
            body["errorMessage"] = error_message
        if variables is not None:
            body["variables"] = variables
        await self._request("POST", f"jobs/{job_key}/failure", body)
        return JOB_ACTION_ACKNOWLEDGEMENT

    async def error_job(
        self,
        job_key: str,
        error_code: str,
        error_message: str | None = None,
        variables: Any = None,
    ) -> str:
        body: dict[str, Any] = {"errorCode": error_code}
        if error_message is not None:
            body["errorMessage"] = error_message
        if variables is not None:
            body["variables"] = variables
        await self._request("POST", f"jobs/{job_key}/error", body)
        return JOB_ACTION_ACKNOWLEDGEMENT

    async def update_job(
        self, job_key: str, retries: int | None = None, timeout: int | None = None
    ) -> None:
        changeset = {
            key: value
            for key, value in (("retries", retries), ("timeout", timeout))
            if value is not None
        }
        await self._request("PATCH", f"jobs/{job_key}", {"changeset": changeset})

    async def resolve_incident(self, incident_key: str) -> None:
        await self._request("POST", f"incidents/{incident_key}/resolution")

    def create_job_worker(self, **config: Any) -> "CamundaJobWorker":
        """Create a CamundaJobWorker polling through this client. See JobWorkerConfig."""
        from camunda8_sdk.tier4_advanced.job_worker import CamundaJobWorker, JobWorkerConfig

        return CamundaJobWorker(JobWorkerConfig(**config), self)

    # ── Process instances ─────────────────────────────────────────────────────

    async def create_process_instance(
        self,
        process_definition_id: str | None = None,
        process_definition_key: str | None = None,
        variables: Any = None,
        version: int | None = None,
        tenant_id: str | None = None,
        operation_reference: int | None = None,
        start_instructions: Sequence[dict[str, Any]] | None = None,
        output_variables_schema: Schema | None = None,
        await_completion: bool = False,
        fetch_variables: Sequence[str] | None = None,
        request_timeout: int | None = None,
    ) -> Any:
        if not process_definition_id and not process_definition_key:
            raise ValueError("process_definition_id or process_definition_key is required")
        body: dict[str, Any] = {"variables": variables or {}, "tenantId": tenant_id}
        optional = {
            "processDefinitionId": process_definition_id,
            "processDefinitionKey": process_definition_key,
            "processDefinitionVersion": version,
            "operationReference": operation_reference,
            "startInstructions": list(start_instructions) if start_instructions else None,
            "fetchVariables": list(fetch_variables) if fetch_variables is not None else None,
            "requestTimeout": request_timeout,
        }
        body.update({key: value for key, value in optional.items() if value is not None})
        if await_completion:
            body["awaitCompletion"] = True
        return await self._request(
            "POST", "process-instances", self._with_tenant(body),
            schema=process_instance_schema(output_variables_schema),
        )

    async def create_process_instance_with_result(self, **request: Any) -> Any:
        """create_process_instance that waits for the instance to complete."""
        return await self.create_process_instance(**request, await_completion=True)

    async def cancel_process_instance(
        self, process_instance_key: str, operation_reference: int | None = None
    ) -> None:
        body = {"operationReference": operation_reference} if operation_reference is not None else _UNSET
        await self._request("POST", f"process-instances/{process_instance_key}/cancellation", body)

    async def migrate_process_instance(
        self,
        process_instance_key: str,
        target_process_definition_key: str,
        mapping_instructions: Sequence[dict[str, str]],
        operation_reference: int | None = None,
    ) -> None:
        body: dict[str, Any] = {
            "targetProcessDefinitionKey": target_process_definition_key,
            "mappingInstructions": list(mapping_instructions),
        }
        if operation_reference is not None:
            body["operationReference"] = operation_reference
        log.debug("rest.migrate", process_instance_key=process_instance_key)
        await self._request("POST", f"process-instances/{process_instance_key}/migration", body)

    # ── Resources & variables ─────────────────────────────────────────────────

    async def delete_resource(
        self, resource_key: str, operation_reference: int | None = None
    ) -> None:
        body = {"operationReference": operation_reference} if operation_reference is not None else {}
        await self._request("POST", f"resources/{resource_key}/deletion", body)

    async def update_element_instance_variables(
        self,
        element_instance_key: str,
        variables: Any,
        local: bool = False,
        operation_reference: int | None = None,
    ) -> None:
        body: dict[str, Any] = {"variables": variables, "local": local}
        if operation_reference is not None:
            body["operationReference"] = operation_reference
        await self._request("POST", f"element-instances/{element_instance_key}/variables", body)


__all__ = ["CamundaRestClient"]
