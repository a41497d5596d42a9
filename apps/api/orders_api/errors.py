from dataclasses import dataclass


@dataclass
class OrderServiceError(Exception):
    code: str
    message: str
    status_code: int = 400
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.code}:{self.message}"

    def as_detail(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class ValidationError(OrderServiceError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR") -> None:
        super().__init__(code=code, message=message, status_code=400)


class NotFoundError(OrderServiceError):
    def __init__(self, message: str, code: str = "NOT_FOUND") -> None:
        super().__init__(code=code, message=message, status_code=404)


class ConflictError(OrderServiceError):
    """A status precondition no longer holds.

    ``retryable`` is only set when a conditional update lost a race; callers
    may retry those with backoff. Terminal-state conflicts are final.
    """

    def __init__(self, message: str, code: str = "CONFLICT", retryable: bool = False) -> None:
        super().__init__(code=code, message=message, status_code=409, retryable=retryable)


class UpstreamError(OrderServiceError):
    def __init__(self, message: str, code: str = "UPSTREAM_ERROR") -> None:
        super().__init__(code=code, message=message, status_code=400)
