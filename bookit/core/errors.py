from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base error carrying a stable machine-readable code.

    Services raise these; the API layer renders them as
    ``{"error": {"code", "message", "details"}}`` with ``status_code``.
    """

    status_code: int = 500

    def __init__(self, code: str, message: str, *, details: list[Any] | None = None, status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or []
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class DomainRejection(AppError):
    """A business rule rejected the request before any lasting side effect."""

    status_code = 400


class NotFound(DomainRejection):
    status_code = 404


class ConflictError(AppError):
    """Lost a race for capacity or promo usage. Clients may resubmit."""

    status_code = 409


class SystemFault(AppError):
    """Storage or unexpected failure, raised after compensation ran."""

    status_code = 500
