"""Single model invocation with validation, timeout, retry and classification.

The invoker is the only place where the network is touched. Every call ends
in an :class:`InvocationResult`; failures are classified, never raised, so
the orchestrator can keep sibling calls isolated. Callers who prefer
exceptions use :meth:`InvocationResult.raise_for_error`.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from modelmesh.drivers.http_client import HttpClientDriver
from modelmesh.kernel.domain.execution import ErrorInfo
from modelmesh.kernel.domain.models import ModelMetadata, ModelStatus, utc_now
from modelmesh.kernel.exceptions import ConfigurationError, HttpClientError, ModelNotFoundError
from modelmesh.kernel.logging import get_logger
from modelmesh.kernel.orchestration.metering import count_units, estimate_cost
from modelmesh.kernel.orchestration.models import (
    InvocationOutcome,
    InvocationPolicy,
    InvocationResult,
    error_kind_for,
)
from modelmesh.kernel.ports.model_directory import ModelDirectory
from modelmesh.kernel.validation import find_violation

logger = get_logger(__name__)

Sleeper = Callable[[float], Awaitable[Any]]


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


class _Attempt:
    """Outcome of a single HTTP attempt."""

    __slots__ = ("outcome", "output", "error", "latency_ms")

    def __init__(
        self,
        outcome: InvocationOutcome,
        latency_ms: float,
        output: Any = None,
        error: ErrorInfo | None = None,
    ) -> None:
        self.outcome = outcome
        self.latency_ms = latency_ms
        self.output = output
        self.error = error


def _failure(
    outcome: InvocationOutcome,
    detail: str,
    latency_ms: float = 0.0,
    status_code: int | None = None,
    path: str | None = None,
    output: Any = None,
) -> _Attempt:
    error = ErrorInfo(
        kind=error_kind_for(outcome), detail=detail, status_code=status_code, path=path
    )
    return _Attempt(outcome, latency_ms, output=output, error=error)


class Invoker:
    """Calls one model endpoint and reports the outcome to the directory.

    Steps for each call:

    1. Resolve the model; unknown ids fail with ``model_not_found``.
    2. Validate the input against the input schema; violations fail with
       ``validation_failed`` before any network activity, and the directory
       is left untouched.
    3. ``POST`` the input as JSON, with the credential as a bearer token.
    4. Classify: network failure or timeout -> ``timeout``; non-2xx ->
       ``upstream_error``; 2xx violating the output schema ->
       ``output_invalid``; otherwise ``success``.
    5. Retry ``timeout`` and ``upstream_error`` up to ``max_retries`` times
       with exponential backoff.
    6. Report ``success`` (online, latency sample) or a final ``timeout`` /
       ``upstream_error`` (error) to the directory.

    Examples
    --------
    Example usage::

        invoker = Invoker(directory)
        result = await invoker.ainvoke("sentiment", {"text": "great"})
        if result.ok:
            print(result.output, result.cost)
    """

    def __init__(
        self,
        directory: ModelDirectory,
        http_client: HttpClientDriver | None = None,
        default_policy: InvocationPolicy | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._directory = directory
        self.default_policy = default_policy or InvocationPolicy()
        self._owns_http_client = http_client is None
        self._http = http_client or HttpClientDriver(
            timeout=self.default_policy.timeout_ms / 1000, raise_for_status=False
        )
        self._sleep = sleep

    @property
    def directory(self) -> ModelDirectory:
        return self._directory

    async def ainvoke(
        self,
        model_id: str,
        payload: Any,
        policy: InvocationPolicy | None = None,
    ) -> InvocationResult:
        """Invoke ``model_id`` with ``payload`` and classify the result."""
        policy = policy or self.default_policy
        started_at = utc_now()
        start = time.monotonic()

        def finish(
            model: ModelMetadata | None, attempt: _Attempt, attempts: int
        ) -> InvocationResult:
            usage = cost = None
            if model is not None and attempt.outcome in (
                InvocationOutcome.SUCCESS,
                InvocationOutcome.OUTPUT_INVALID,
            ):
                usage = count_units(model, attempt.output)
                cost = estimate_cost(model, usage)
            return InvocationResult(
                model_id=model_id,
                model_name=model.name if model is not None else None,
                outcome=attempt.outcome,
                input=payload,
                output=attempt.output,
                error=attempt.error,
                attempts=attempts,
                latency_ms=attempt.latency_ms,
                elapsed_ms=_elapsed_ms(start),
                cost=cost,
                token_usage=usage,
                started_at=started_at,
                completed_at=utc_now(),
            )

        model = await self._directory.aresolve(model_id)
        if model is None:
            logger.warning("Model '{model}' not found", model=model_id)
            attempt = _failure(InvocationOutcome.MODEL_NOT_FOUND, f"Model '{model_id}' not found")
            return finish(None, attempt, 0)

        violation = find_violation(payload, model.input_schema)
        if violation is not None:
            logger.info(
                "Input rejected for model '{model}' at {path}: {reason}",
                model=model_id,
                path=violation.path,
                reason=violation.reason,
            )
            attempt = _failure(
                InvocationOutcome.VALIDATION_FAILED,
                f"input {violation.reason}",
                path=violation.path,
            )
            return finish(model, attempt, 0)

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token := model.bearer_token():
            headers["Authorization"] = f"Bearer {token}"

        attempts = 0
        while True:
            attempt = await self._attempt(model, payload, headers, policy)
            attempts += 1
            if not attempt.outcome.retryable or attempts > policy.max_retries:
                break
            delay = policy.backoff_seconds(attempts - 1)
            logger.debug(
                "Model '{model}' {outcome} (attempt {attempt}/{total}), retrying in {delay:.3f}s",
                model=model_id,
                outcome=attempt.outcome.value,
                attempt=attempts,
                total=policy.max_retries + 1,
                delay=delay,
            )
            await self._sleep(delay)

        result = finish(model, attempt, attempts)
        await self._report(result)
        return result

    async def _attempt(
        self,
        model: ModelMetadata,
        payload: Any,
        headers: dict[str, str],
        policy: InvocationPolicy,
    ) -> _Attempt:
        timeout_s = policy.timeout_ms / 1000
        start = time.monotonic()
        try:
            async with asyncio.timeout(timeout_s):
                response = await self._http.apost(
                    model.endpoint, json=payload, headers=headers, timeout=timeout_s
                )
        except (TimeoutError, httpx.TimeoutException):
            return _failure(
                InvocationOutcome.TIMEOUT,
                f"no response within {policy.timeout_ms:.0f} ms",
                latency_ms=_elapsed_ms(start),
            )
        except httpx.RequestError as e:
            return _failure(
                InvocationOutcome.TIMEOUT,
                f"network failure: {type(e).__name__}: {e}",
                latency_ms=_elapsed_ms(start),
            )
        except HttpClientError as e:
            return _failure(
                InvocationOutcome.UPSTREAM_ERROR,
                f"HTTP {e.status_code}",
                latency_ms=_elapsed_ms(start),
                status_code=e.status_code,
            )

        latency_ms = _elapsed_ms(start)
        status_code = response["status_code"]
        if not 200 <= status_code < 300:
            return _failure(
                InvocationOutcome.UPSTREAM_ERROR,
                f"HTTP {status_code}",
                latency_ms=latency_ms,
                status_code=status_code,
            )

        body = response["body"]
        if not response.get("json", False):
            # Endpoints that omit the JSON content type still must send JSON
            try:
                body = json.loads(body)
            except ValueError:
                return _failure(
                    InvocationOutcome.OUTPUT_INVALID,
                    "response body is not valid JSON",
                    latency_ms=latency_ms,
                    status_code=status_code,
                    output=body,
                )

        violation = find_violation(body, model.output_schema)
        if violation is not None:
            return _failure(
                InvocationOutcome.OUTPUT_INVALID,
                f"output {violation.reason}",
                latency_ms=latency_ms,
                status_code=status_code,
                path=violation.path,
                output=body,
            )
        return _Attempt(InvocationOutcome.SUCCESS, latency_ms, output=body)

    async def _report(self, result: InvocationResult) -> None:
        """Feed the terminal outcome into the directory's health signal."""
        if result.outcome == InvocationOutcome.SUCCESS:
            await self._directory.arecord_outcome(result.model_id, "online", result.latency_ms)
        elif result.outcome.retryable:
            logger.warning(
                "Model '{model}' failed after {attempts} attempt(s): {detail}",
                model=result.model_id,
                attempts=result.attempts,
                detail=result.error.detail if result.error else result.outcome.value,
            )
            await self._directory.arecord_outcome(result.model_id, "error", result.latency_ms)

    async def aprobe(self, model_id: str, policy: InvocationPolicy | None = None) -> ModelStatus:
        """Probe the model's health-check URL and record the outcome.

        Raises
        ------
        ModelNotFoundError
            If the model id is unknown
        ConfigurationError
            If the model declares no health-check URL
        """
        policy = policy or self.default_policy
        model = await self._directory.aresolve(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)
        if not model.health_check_url:
            raise ConfigurationError(model_id, "model has no health_check_url")

        headers: dict[str, str] = {}
        if token := model.bearer_token():
            headers["Authorization"] = f"Bearer {token}"

        timeout_s = policy.timeout_ms / 1000
        start = time.monotonic()
        try:
            async with asyncio.timeout(timeout_s):
                response = await self._http.aget(
                    model.health_check_url, headers=headers, timeout=timeout_s
                )
            healthy = 200 <= response["status_code"] < 300
        except (TimeoutError, httpx.RequestError, HttpClientError) as e:
            logger.info("Health probe for '{model}' failed: {error}", model=model_id, error=e)
            healthy = False

        latency_ms = _elapsed_ms(start)
        status = ModelStatus.ONLINE if healthy else ModelStatus.ERROR
        await self._directory.arecord_outcome(
            model_id, status.value, latency_ms  # type: ignore[arg-type]
        )
        return status

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()
