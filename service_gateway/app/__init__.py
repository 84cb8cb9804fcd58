"""
API Gateway Service package for StudyMate.

The gateway fronts the frontend's requests to the course, DSA chat, resume
analyzer and profile services, providing:
- Service routing via a static registry
- Per-service API key selection (default key plus overrides)
- Timeouts and retries for upstream calls
- Per-service circuit breaking with deterministic fallback answers

Structure:
- app.main: FastAPI app, routes, and lifecycle wiring.
- app.registry: Service descriptors loaded from configuration.
- app.credentials: API key resolution.
- app.adapters: HTTP client for upstream services.
- app.auth: Inbound bearer auth and service tokens.
- app.domain: Envelopes, operation table, fallbacks and the router.
"""
