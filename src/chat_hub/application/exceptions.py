from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthError(AppError):
    """Bad, expired or revoked credential. Fatal for a socket."""


class ProtocolError(AppError):
    """Malformed envelope, unknown type or action outside its valid state."""


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class PersistenceError(AppError):
    """Storage unreachable or too slow. Never retried inside the hub."""
