"""
Service layer exceptions.
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        correlation_id: str | None = None,
    ):
        self.service_id = service_id
        self.correlation_id = correlation_id
        super().__init__(message)


class NetworkError(ServiceError):
    """Content API could not be reached (connection failure or timeout)."""

    pass


class HttpStatusError(ServiceError):
    """Content API answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        service_id: str | None = None,
        correlation_id: str | None = None,
    ):
        self.status_code = status_code
        self.code = code
        super().__init__(message, service_id=service_id, correlation_id=correlation_id)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: Any,
        service_id: str | None = None,
    ) -> "HttpStatusError":
        """
        Build an error from the API error envelope.

        The API answers failures with
        ``{"error": {"code": ..., "message": ..., "correlation_id": ...}}``;
        anything else falls back to a generic message.
        """
        envelope = body.get("error") if isinstance(body, dict) else None
        if isinstance(envelope, dict):
            return cls(
                envelope.get("message") or f"HTTP {status_code}",
                status_code=status_code,
                code=envelope.get("code"),
                service_id=service_id,
                correlation_id=envelope.get("correlation_id"),
            )
        return cls(f"HTTP {status_code}", status_code=status_code, service_id=service_id)


class ParseError(ServiceError):
    """Response body could not be decoded."""

    pass


class ValidationError(ServiceError):
    """Request rejected locally before reaching the cache or the API."""

    pass


class RequestCancelledError(ServiceError):
    """A shared in-flight read was cancelled by its owner (cache disposed)."""

    pass
