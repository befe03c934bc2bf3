from __future__ import annotations


class TrackerError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidInputError(TrackerError, ValueError):
    status_code = 400


class UnauthorizedError(TrackerError):
    status_code = 401


class ForbiddenError(TrackerError):
    status_code = 403


class NotFoundError(TrackerError, KeyError):
    status_code = 404


class ConflictError(TrackerError):
    status_code = 409


__all__ = [
    "ConflictError",
    "ForbiddenError",
    "InvalidInputError",
    "NotFoundError",
    "TrackerError",
    "UnauthorizedError",
]
