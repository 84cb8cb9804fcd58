"""
Shared utilities for the StudyMate gateway.

This package aggregates common building blocks:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry helper with exponential backoff
- circuit_breaker: Per-service circuit breakers and health state
- base_service: FastAPI service skeleton (middleware, /health, /metrics)

Do not import from service_gateway into shared/.
"""
