"""
API Gateway service for StudyMate.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from fastapi import Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.circuit_breaker import CircuitBreakerManager
from shared.config import ServiceConfig
from shared.logging import request_id_var, set_user_context
from service_gateway.app.adapters import UpstreamClient
from service_gateway.app.auth import BearerAuthenticator, ServiceTokenIssuer
from service_gateway.app.credentials import CredentialResolver
from service_gateway.app.domain.envelopes import RequestEnvelope, ResponseEnvelope, UserContext
from service_gateway.app.domain.operations import ANALYZE_RESUME, CHAT, GENERATE_COURSE, GET_PROFILE
from service_gateway.app.domain.router import RequestRouter
from service_gateway.app.registry import ServiceRegistry


class RouteRequest(BaseModel):
    """Body of the generic routing endpoint."""
    operation: str = Field(..., description="Gateway operation name")
    payload: Dict[str, Any] = Field(default_factory=dict)


class GatewayService(BaseService):
    """API Gateway service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        super().__init__("gateway", 8000, config=config)

        # Startup-fatal: unknown services or missing keys abort here
        self.registry = ServiceRegistry.from_settings(self.config)
        self.credentials = CredentialResolver.from_settings(self.config)
        self.credentials.validate(self.registry.names())

        self.token_issuer = ServiceTokenIssuer(
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            ttl_seconds=self.config.service_token_ttl_seconds,
        )
        self.authenticator = BearerAuthenticator(self.config.jwt_secret, algorithm=self.config.jwt_algorithm)
        self.upstream_client = UpstreamClient(
            self.token_issuer,
            transport=transport,
            base_delay=self.config.retry_base_delay_seconds,
            max_delay=self.config.retry_max_delay_seconds,
            sleep=sleep,
        )
        self.circuits = CircuitBreakerManager(
            failure_threshold=self.config.circuit_failure_threshold,
            recovery_timeout=self.config.circuit_cooldown_seconds,
            failure_window=self.config.circuit_failure_window_seconds,
            clock=clock,
            on_state_change=self.metrics.set_circuit_state,
        )
        self.router = RequestRouter(
            self.registry,
            self.credentials,
            self.upstream_client,
            self.circuits,
            metrics=self.metrics,
        )
        self._probe_task: Optional[asyncio.Task] = None

        @self.app.on_event("startup")
        async def _startup():
            if self.config.health_probe_interval_seconds > 0:
                self._probe_task = asyncio.create_task(self._probe_loop())

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self._probe_task is not None:
                self._probe_task.cancel()
                try:
                    await self._probe_task
                except asyncio.CancelledError:
                    pass
                self._probe_task = None
            await self.upstream_client.close()

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def _probe_loop(self) -> None:
        """Periodically probe upstream health endpoints."""
        interval = self.config.health_probe_interval_seconds
        while True:
            await asyncio.sleep(interval)
            results = await self.router.probe_health()
            self.logger.debug("Health probe completed", results=results)

    async def _check_dependencies(self, probe: bool = False) -> Dict[str, Dict[str, Any]]:
        """Per-service health as recorded by the circuit breakers."""
        probes: Dict[str, Dict[str, Any]] = {}
        if probe:
            probes = await self.router.probe_health(request_id_var.get())

        report = {}
        for name, health in self.circuits.health_states().items():
            entry = {
                "status": health.status.value,
                "circuit": self.circuits.get_circuit_breaker(name).state.value,
                "consecutive_failures": health.consecutive_failures,
                "last_checked_at": health.last_checked_at,
            }
            if name in probes:
                entry["probe"] = probes[name]
            report[name] = entry
        return report

    def _user_context(self, request: Request) -> UserContext:
        user = self.authenticator.authenticate(request, request_id=request_id_var.get())
        set_user_context(user.user_id)
        return user

    async def _dispatch(self, request: Request, operation: str, payload: Dict[str, Any]) -> ResponseEnvelope:
        envelope = RequestEnvelope(
            operation=operation,
            payload=payload,
            user_context=self._user_context(request),
        )
        return await self.router.route(envelope)

    @staticmethod
    def _native_response(envelope: ResponseEnvelope) -> JSONResponse:
        """Upstream-shaped body; envelope metadata travels in headers."""
        headers = {
            "X-Gateway-Source": envelope.source.value,
            "X-Gateway-Service": envelope.service,
            "X-Gateway-Latency-Ms": str(envelope.latency_ms),
        }
        if envelope.warning:
            headers["X-Gateway-Warning"] = envelope.warning
        return JSONResponse(content=envelope.body, headers=headers)

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "gateway",
                "version": "1.0.0",
                "services": self.registry.names(),
            }

        @self.app.post("/chat")
        async def chat(request: Request, payload: Dict[str, Any] = Body(...)):
            """DSA study assistant chat."""
            return self._native_response(await self._dispatch(request, CHAT, payload))

        @self.app.post("/courses")
        async def generate_course(request: Request, payload: Dict[str, Any] = Body(...)):
            """Start course generation for the authenticated user."""
            return self._native_response(await self._dispatch(request, GENERATE_COURSE, payload))

        @self.app.post("/resumes/analyze")
        async def analyze_resume(request: Request, payload: Dict[str, Any] = Body(...)):
            """Analyze a resume for the authenticated user."""
            return self._native_response(await self._dispatch(request, ANALYZE_RESUME, payload))

        @self.app.get("/profile")
        async def get_profile(request: Request):
            """Profile of the authenticated user."""
            return self._native_response(await self._dispatch(request, GET_PROFILE, {}))

        @self.app.post("/api/v1/route", response_model=ResponseEnvelope)
        async def route(request: Request, body: RouteRequest):
            """Route any operation and return the full response envelope."""
            return await self._dispatch(request, body.operation, body.payload)

        @self.app.get("/api/v1/status")
        async def api_status():
            """Circuit breaker state per upstream service."""
            return {
                "status": "operational",
                "services": self.circuits.get_all_states(),
            }


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = GatewayService(config=config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
