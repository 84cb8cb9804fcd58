"""
Request router: resolves the target service for an operation and dispatches
through the upstream client under the per-service circuit policy.

Transport failures never reach the caller. A failed or short-circuited call is
answered with the operation's fallback body and a warning on the envelope.
"""

import asyncio
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError

from shared.circuit_breaker import CircuitBreakerManager, CircuitBreakerOpenException
from shared.errors import AuthenticationError, RoutingError, UpstreamError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from service_gateway.app.adapters import UpstreamClient
from service_gateway.app.credentials import CredentialResolver
from service_gateway.app.domain.envelopes import RequestEnvelope, ResponseEnvelope, ResponseSource
from service_gateway.app.domain.operations import OPERATIONS, OperationSpec
from service_gateway.app.registry import ServiceRegistry

CIRCUIT_OPEN_WARNING = "circuit_open"


class RequestRouter:
    """Routes request envelopes to upstream services."""

    def __init__(self,
                 registry: ServiceRegistry,
                 credentials: CredentialResolver,
                 client: UpstreamClient,
                 circuits: CircuitBreakerManager,
                 metrics: Optional[MetricsCollector] = None,
                 operations: Optional[Dict[str, OperationSpec]] = None):
        self.registry = registry
        self.credentials = credentials
        self.client = client
        self.circuits = circuits
        self.metrics = metrics
        self.operations = operations if operations is not None else OPERATIONS
        self.logger = get_logger("gateway.router")

        for name in self.registry.names():
            self.circuits.get_circuit_breaker(name, expected_exception=UpstreamError)

    def _operation(self, envelope: RequestEnvelope) -> OperationSpec:
        spec = self.operations.get(envelope.operation)
        if spec is None:
            raise RoutingError(
                f"Unknown operation: {envelope.operation}",
                details={"operation": envelope.operation, "known": sorted(self.operations)},
                status_code=404
            )
        return spec

    def _validate(self, spec: OperationSpec, payload: Dict[str, Any]):
        try:
            return spec.payload_model.model_validate(payload)
        except ValidationError as e:
            raise RoutingError(
                f"Malformed payload for {spec.name}",
                details={"errors": e.errors(include_url=False, include_context=False)}
            ) from e

    async def route(self, envelope: RequestEnvelope) -> ResponseEnvelope:
        """Dispatch one request; always answers, possibly degraded."""
        started = time.perf_counter()
        spec = self._operation(envelope)
        payload = self._validate(spec, envelope.payload)

        user = envelope.user_context
        if spec.requires_user and not user.authenticated:
            raise AuthenticationError(f"Operation {spec.name} requires an authenticated user")

        descriptor = self.registry.resolve(spec.service)
        credentials = self.credentials.credential_for(spec.service)
        breaker = self.circuits.get_circuit_breaker(spec.service, expected_exception=UpstreamError)
        request = spec.build_request(payload, user)

        async def _call() -> Dict[str, Any]:
            return spec.normalize(await self.client.call(descriptor, credentials, request))

        call_started = time.perf_counter()
        try:
            body = await breaker.call(_call)
        except CircuitBreakerOpenException:
            return self._fallback(spec, envelope, started, CIRCUIT_OPEN_WARNING)
        except UpstreamError as e:
            self._record_upstream(spec, e.label, call_started)
            self.logger.warning(
                "Upstream call failed, serving fallback",
                upstream=spec.service,
                operation=spec.name,
                kind=e.label,
                error=e.message
            )
            return self._fallback(spec, envelope, started, f"upstream_{e.label.lower()}", e.label)
        except asyncio.CancelledError:
            self._record_upstream(spec, "cancelled", call_started)
            raise

        self._record_upstream(spec, "success", call_started)
        return ResponseEnvelope(
            body=body,
            source=ResponseSource.LIVE,
            latency_ms=_elapsed_ms(started),
            service=spec.service,
            operation=spec.name,
        )

    def _fallback(self, spec: OperationSpec, envelope: RequestEnvelope, started: float,
                  warning: str, error_kind: Optional[str] = None) -> ResponseEnvelope:
        if self.metrics:
            self.metrics.record_fallback(spec.service, spec.name, warning)
        if warning == CIRCUIT_OPEN_WARNING:
            self.logger.warning("Circuit open, serving fallback", upstream=spec.service, operation=spec.name)
        return ResponseEnvelope(
            body=spec.fallback(envelope.payload),
            source=ResponseSource.FALLBACK,
            latency_ms=_elapsed_ms(started),
            service=spec.service,
            operation=spec.name,
            warning=warning,
            error_kind=error_kind,
        )

    def _record_upstream(self, spec: OperationSpec, outcome: str, call_started: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_call(spec.service, spec.name, outcome, time.perf_counter() - call_started)

    async def probe_health(self, request_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Probe every registered service's health endpoint concurrently.

        Outcomes feed the circuit breakers; an OPEN circuit is not probed until
        its cool-down has elapsed.
        """
        names = self.registry.names()
        results = await asyncio.gather(*(self._probe(name, request_id) for name in names))
        return dict(zip(names, results))

    async def _probe(self, name: str, request_id: Optional[str]) -> Dict[str, Any]:
        descriptor = self.registry.resolve(name)
        credentials = self.credentials.credential_for(name)
        breaker = self.circuits.get_circuit_breaker(name, expected_exception=UpstreamError)
        try:
            body = await breaker.call(self.client.check_health, descriptor, credentials, request_id)
        except CircuitBreakerOpenException:
            return {"probed": False, "error": CIRCUIT_OPEN_WARNING}
        except UpstreamError as e:
            self.logger.warning("Health probe failed", upstream=name, kind=e.label)
            return {"probed": True, "error": e.label}
        return {"probed": True, "status": body.get("status", "unknown")}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)
