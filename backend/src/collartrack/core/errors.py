"""Error taxonomy rendered into the ``{"ok": false, "error": ...}`` envelope."""

from __future__ import annotations

from fastapi import status


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingFieldError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedOperationError(ApiError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED


class RecordNotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(ApiError):
    """Database failure; the open transaction has already been rolled back."""

    @classmethod
    def from_exception(cls, exc: Exception) -> "StoreError":
        orig = getattr(exc, "orig", None)
        return cls(str(orig) if orig is not None else str(exc))
