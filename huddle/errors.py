"""
Domain errors raised by the repository and auth layers.

Each error carries the HTTP status the API renders it with; ``create_app``
turns them into ``{"error": message}`` responses.
"""

from __future__ import annotations


class HuddleError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(HuddleError):
    status_code = 400


class AuthenticationError(HuddleError):
    status_code = 401


class PermissionDeniedError(HuddleError):
    status_code = 403


class NotFoundError(HuddleError):
    status_code = 404


class ConflictError(HuddleError):
    status_code = 409
