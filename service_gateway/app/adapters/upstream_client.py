"""
HTTP client used by the gateway to reach upstream services.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio

import httpx

from shared.errors import UpstreamError, UpstreamErrorKind
from shared.logging import get_logger
from shared.retry import NO_RETRY, RetryConfig, retry_async
from service_gateway.app.auth.tokens import ServiceTokenIssuer
from service_gateway.app.credentials import CredentialSet
from service_gateway.app.registry import ServiceDescriptor


@dataclass(frozen=True)
class UpstreamRequest:
    """One outbound call in the upstream's native shape."""
    method: str
    path: str
    json: Optional[Dict[str, Any]] = None
    idempotent: bool = False
    request_id: Optional[str] = None
    user_id: Optional[str] = None


class UpstreamClient:
    """Performs upstream calls with timeout, bounded retry and error mapping.

    Only idempotent requests are retried; a repeated course generation call
    could create duplicate courses.
    """

    def __init__(self,
                 token_issuer: ServiceTokenIssuer,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 base_delay: float = 0.2,
                 max_delay: float = 2.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.token_issuer = token_issuer
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._client = httpx.AsyncClient(transport=transport)
        self.logger = get_logger("gateway.upstream_client")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _retry_config(self, descriptor: ServiceDescriptor, request: UpstreamRequest) -> RetryConfig:
        if not request.idempotent:
            return NO_RETRY
        return RetryConfig(
            max_attempts=descriptor.max_retries + 1,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential_base=2.0,
            jitter=True
        )

    def _headers(self, descriptor: ServiceDescriptor, credentials: CredentialSet,
                 request: UpstreamRequest) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "X-API-Key": credentials.api_key,
            "Authorization": f"Bearer {self.token_issuer.issue(descriptor.name, request.user_id)}",
        }
        if request.request_id:
            headers["X-Request-ID"] = request.request_id
        if request.user_id:
            headers["X-User-ID"] = request.user_id
        return headers

    async def call(self, descriptor: ServiceDescriptor, credentials: CredentialSet,
                   request: UpstreamRequest) -> Dict[str, Any]:
        """Execute the request and return the upstream JSON object.

        Raises UpstreamError on timeout, refusal, non-2xx status or a body that
        is not a JSON object.
        """
        headers = self._headers(descriptor, credentials, request)

        async def _send() -> Dict[str, Any]:
            return await self._send_once(descriptor, request, headers)

        return await retry_async(
            _send,
            self._retry_config(descriptor, request),
            exceptions=(UpstreamError,),
            should_retry=lambda e: e.retryable,
            sleep=self._sleep,
            name=f"{descriptor.name}.{request.method.lower()}"
        )

    async def check_health(self, descriptor: ServiceDescriptor, credentials: CredentialSet,
                           request_id: Optional[str] = None) -> Dict[str, Any]:
        """GET the service's health endpoint."""
        request = UpstreamRequest(
            method="GET",
            path=descriptor.health_path,
            idempotent=True,
            request_id=request_id,
        )
        return await self.call(descriptor, credentials, request)

    async def _send_once(self, descriptor: ServiceDescriptor, request: UpstreamRequest,
                         headers: Dict[str, str]) -> Dict[str, Any]:
        url = descriptor.url_for(request.path)
        try:
            response = await self._client.request(
                request.method,
                url,
                json=request.json,
                headers=headers,
                timeout=descriptor.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.TIMEOUT,
                f"timed out after {descriptor.timeout_ms}ms",
                details={"url": url}
            ) from e
        except httpx.TransportError as e:
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.REFUSED,
                f"connection failed: {e}",
                details={"url": url}
            ) from e
        except httpx.DecodingError as e:
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.MALFORMED_BODY,
                f"response body could not be decoded: {e}",
                details={"url": url}
            ) from e
        except httpx.HTTPError as e:
            # TooManyRedirects and other request-level failures
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.REFUSED,
                f"request failed: {e}",
                details={"url": url}
            ) from e

        if not response.is_success:
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.HTTP_STATUS,
                f"returned HTTP {response.status_code}",
                status=response.status_code,
                details={"url": url}
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.MALFORMED_BODY,
                "response body is not valid JSON",
                details={"url": url}
            ) from e

        if not isinstance(body, dict):
            raise UpstreamError(
                descriptor.name, UpstreamErrorKind.MALFORMED_BODY,
                "response body is not a JSON object",
                details={"url": url}
            )

        self.logger.debug(
            "Upstream call succeeded",
            upstream=descriptor.name,
            method=request.method,
            path=request.path,
            status_code=response.status_code
        )
        return body
