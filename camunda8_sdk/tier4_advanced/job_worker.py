"""
camunda8_sdk.tier4_advanced.job_worker
────────────────────────────────────────
Polling job worker for the REST API. Every poll_interval_ms the worker asks
for up to (max_jobs_to_activate − active) jobs, runs the handler for each
job in its own task, and fails the job automatically if the handler raises.
stop() stops polling and waits (bounded by a deadline) for active jobs to
finish; running handlers are never cancelled.

Usage::

    async def charge(job, log):
        log.info("charging", order=job.variables["orderId"])
        return await job.complete({"charged": True})

    worker = camunda.create_job_worker(
        type="charge-card", worker="payments-1", job_handler=charge,
        max_jobs_to_activate=32, timeout=60_000,
    )
    ...
    await worker.stop()

Notifications (``worker.on(event)``): start, stop, poll, poll_error.
"""
from __future__ import annotations

import asyncio
import contextlib
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from camunda8_sdk.tier0_core.errors import DrainTimeoutError
from camunda8_sdk.tier0_core.logging import bind_context, clear_context, get_logger
from camunda8_sdk.tier1_runtime.schema import Schema
from camunda8_sdk.tier3_platform.dto import Job

if TYPE_CHECKING:
    from camunda8_sdk.tier3_platform.rest_client import CamundaRestClient

JobHandler = Callable[[Job, Any], Any]

WORKER_EVENTS = ("start", "stop", "poll", "poll_error")


@dataclass
class JobWorkerConfig:
    type: str
    worker: str
    job_handler: JobHandler
    max_jobs_to_activate: int
    timeout: int
    poll_interval_ms: int = 30_000
    fetch_variable: list[str] | None = None
    request_timeout: int | None = None
    tenant_ids: list[str] | None = None
    input_variable_schema: Schema | None = None
    custom_headers_schema: Schema | None = None
    auto_start: bool = True

    def __post_init__(self) -> None:
        if self.max_jobs_to_activate < 1:
            raise ValueError("max_jobs_to_activate must be at least 1")
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")


class CamundaJobWorker:
    """
    Bounded-capacity polling worker.

    ``currently_active_job_count`` stays within [0, max_jobs_to_activate]:
    it grows only by the size of an activated batch and shrinks by exactly
    one per handled job, whatever the handler does.
    """

    drain_check_interval = 0.5

    def __init__(self, config: JobWorkerConfig, rest_client: "CamundaRestClient") -> None:
        self.config = config
        self.rest_client = rest_client
        self.currently_active_job_count = 0
        self.log = get_logger(__name__).bind(worker=config.worker, type=config.type)
        self._listeners: dict[str, list[Callable[..., Any]]] = {e: [] for e in WORKER_EVENTS}
        self._loop_task: asyncio.Task[None] | None = None
        self._activation: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

        self.log.debug("worker.created", **self._meta())
        if config.auto_start:
            self.start()

    @property
    def capacity(self) -> int:
        return self.config.max_jobs_to_activate

    @property
    def is_polling(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def _meta(self) -> dict[str, Any]:
        return {
            "poll_interval_ms": self.config.poll_interval_ms,
            "capacity": self.capacity,
            "current_load": self.currently_active_job_count,
        }

    # ── Notifications ─────────────────────────────────────────────────────────

    def on(self, event: str, listener: Callable[..., Any] | None = None) -> Any:
        """Register *listener* for *event*; usable as ``@worker.on("poll")``."""
        if event not in self._listeners:
            raise ValueError(f"unknown worker event {event!r}; expected one of {WORKER_EVENTS}")

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self._listeners[event].append(fn)
            return fn

        return decorator(listener) if listener is not None else decorator

    def off(self, event: str, listener: Callable[..., Any]) -> None:
        with contextlib.suppress(KeyError, ValueError):
            self._listeners[event].remove(listener)

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._spawn(result)
            except Exception as exc:
                self.log.error("worker.listener_failed", worker_event=event, error=str(exc))

    def _spawn(self, awaitable: Any) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start polling. Must be called with a running event loop."""
        if self.is_polling:
            self.log.warning("worker.already_started", **self._meta())
            return
        loop = asyncio.get_running_loop()
        self.log.debug("worker.starting", **self._meta())
        self._emit("start")
        self._loop_task = loop.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        interval = self.config.poll_interval_ms / 1000
        while True:
            self.poll()
            await asyncio.sleep(interval)

    async def stop(self, deadline_ms: int = 30_000) -> None:
        """
        Stop polling and wait for active jobs to finish. An activation
        request still in flight is awaited first, so jobs it returns are
        drained too. Raises DrainTimeoutError if the activation or any job
        is still pending after *deadline_ms*.
        """
        self.log.debug("worker.stop_requested", **self._meta())
        loop = asyncio.get_running_loop()
        deadline = loop.time() + deadline_ms / 1000
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        activation = self._activation
        if activation is not None and not activation.done():
            self.log.debug("worker.awaiting_activation", **self._meta())
            await asyncio.wait({activation}, timeout=max(0.0, deadline - loop.time()))
            if not activation.done():
                self.log.warning("worker.drain_timeout", deadline_ms=deadline_ms, **self._meta())
                raise DrainTimeoutError(deadline_ms, self.currently_active_job_count)

        if self.currently_active_job_count == 0:
            self.log.debug("worker.stopped", **self._meta())
            self._emit("stop")
            return

        while True:
            await asyncio.sleep(max(0.0, min(self.drain_check_interval, deadline - loop.time())))
            if self.currently_active_job_count == 0:
                self.log.debug("worker.stopped", **self._meta())
                self._emit("stop")
                return
            if loop.time() >= deadline:
                self.log.warning("worker.drain_timeout", deadline_ms=deadline_ms, **self._meta())
                raise DrainTimeoutError(deadline_ms, self.currently_active_job_count)
            self.log.debug("worker.draining", **self._meta())

    # ── Polling ───────────────────────────────────────────────────────────────

    def poll(self) -> asyncio.Task[None] | None:
        """
        Run one poll tick. Returns the activation task, or None when the
        tick was skipped (at capacity, or an activation still in flight).
        """
        self._emit("poll", {
            "currently_active_job_count": self.currently_active_job_count,
            "max_jobs_to_activate": self.capacity,
            "worker": self.config.worker,
        })
        if self.currently_active_job_count >= self.capacity:
            self.log.debug("worker.at_capacity", **self._meta())
            return None
        if self._activation is not None and not self._activation.done():
            self.log.debug("worker.activation_in_flight", **self._meta())
            return None
        remaining = self.capacity - self.currently_active_job_count
        self._activation = asyncio.get_running_loop().create_task(self._activate(remaining))
        return self._activation

    async def _activate(self, remaining: int) -> None:
        try:
            jobs = await self.rest_client.activate_jobs(
                type=self.config.type,
                worker=self.config.worker,
                max_jobs_to_activate=remaining,
                timeout=self.config.timeout,
                fetch_variable=self.config.fetch_variable,
                request_timeout=self.config.request_timeout,
                tenant_ids=self.config.tenant_ids,
                input_variable_schema=self.config.input_variable_schema,
                custom_headers_schema=self.config.custom_headers_schema,
            )
        except Exception as exc:
            self.log.warning("worker.poll_failed", error=str(exc), **self._meta())
            self._emit("poll_error", exc)
            return

        self.currently_active_job_count += len(jobs)
        self.log.debug("worker.activated", count=len(jobs), **self._meta())
        for job in jobs:
            self._spawn(self.handle_job(job))

    async def handle_job(self, job: Job) -> None:
        # Each job runs in its own task, so the bound context stays with this job.
        bind_context(job_key=job.key, job_type=self.config.type)
        job_log = self.log.bind(job_key=job.key)
        try:
            job_log.debug("job.handler_invoked")
            result = self.config.job_handler(job, job_log)
            if inspect.isawaitable(result):
                await result
            job_log.debug("job.handler_completed")
        except Exception as exc:
            job_log.error("job.handler_failed", error=str(exc), error_type=type(exc).__name__)
            try:
                await job.fail(error_message=str(exc), retries=job.retries - 1)
            except Exception as fail_exc:
                job_log.error("job.auto_fail_failed", error=str(fail_exc))
        finally:
            self.currently_active_job_count -= 1
            clear_context()


__all__ = ["CamundaJobWorker", "JobWorkerConfig", "JobHandler", "WORKER_EVENTS"]
