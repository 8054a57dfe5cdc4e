"""
Error taxonomy for studio downloads.
Every failure that reaches a client is one of these; collaborator errors are mapped
to InternalError at the orchestrator boundary and their text never leaves the server.
"""
from __future__ import annotations


class StudioError(Exception):
    """Base error with an HTTP-equivalent status code and a client-safe message."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message}


class Unauthorized(StudioError):
    status_code = 401
    default_message = "Unauthorized"


class BadRequest(StudioError):
    status_code = 400
    default_message = "Bad request"


class Forbidden(StudioError):
    status_code = 403
    default_message = "No access to this packet"


class NotFound(StudioError):
    status_code = 404
    default_message = "No pages available"


class EmptySelection(NotFound):
    """Collection has pages, but none survived published/tier/vault filtering."""


class PacketTimeout(StudioError):
    status_code = 504
    default_message = "Packet build timed out"


class InternalError(StudioError):
    status_code = 500
    default_message = "Server error"


class ArchiveBuildError(RuntimeError):
    """Document or archive failed sanity checks (empty, undersized, nothing added)."""
