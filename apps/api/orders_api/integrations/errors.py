from dataclasses import dataclass


@dataclass
class IntegrationError(Exception):
    """Failure talking to the payment gateway, the upload service or Redis."""

    service: str
    code: str
    message: str
    retryable: bool = False
    upstream_status: int | None = None

    def __str__(self) -> str:
        return f"{self.service}:{self.code}:{self.message}"

    def as_detail(self) -> dict:
        return {
            "service": self.service,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class IntegrationTimeoutError(IntegrationError):
    def __init__(self, service: str, message: str = "Upstream timeout") -> None:
        super().__init__(service=service, code="TIMEOUT", message=message, retryable=True)


class IntegrationUnavailableError(IntegrationError):
    def __init__(
        self,
        service: str,
        message: str = "Upstream unavailable",
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(
            service=service,
            code="UNAVAILABLE",
            message=message,
            retryable=True,
            upstream_status=upstream_status,
        )


class IntegrationBadGatewayError(IntegrationError):
    def __init__(self, service: str, message: str = "Malformed upstream response") -> None:
        super().__init__(service=service, code="BAD_GATEWAY", message=message)


class IntegrationRejectedError(IntegrationError):
    """The upstream understood the request and declined it (4xx)."""

    def __init__(self, service: str, message: str, upstream_status: int | None = None) -> None:
        super().__init__(
            service=service, code="REJECTED", message=message, upstream_status=upstream_status
        )
