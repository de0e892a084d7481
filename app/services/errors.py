from __future__ import annotations

from typing import Any


class ServiceError(RuntimeError):
    def __init__(self, message: str, status_code: int = 400, *, extra: dict[str, Any] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.extra = extra or {}

    def to_body(self) -> dict[str, Any]:
        return {"detail": str(self), **self.extra}


class NotFoundError(ServiceError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class ForbiddenError(ServiceError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class InsufficientCreditsError(ServiceError):
    def __init__(self, message: str = "Insufficient credits", status_code: int = 402, **extra: Any):
        super().__init__(message, status_code=status_code, extra=extra)


class DailyLimitError(ServiceError):
    def __init__(self, message: str, *, reset_time: str):
        super().__init__(message, status_code=429, extra={"rateLimited": True, "resetTime": reset_time})


class PaymentError(ServiceError):
    pass


class InvalidSignatureError(PaymentError):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, status_code=400)
