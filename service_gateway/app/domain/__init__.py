"""
Domain layer for the Gateway Service.

- envelopes: normalized request/response wrappers
- operations: operation table mapping gateway operations to upstreams
- fallback: deterministic offline answers
- router: dispatch under the per-service circuit policy

Submodules are imported directly; this package re-exports nothing so that
adapters can depend on envelopes without pulling in the router.
"""
