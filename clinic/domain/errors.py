"""Error kinds raised by the clinic services."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    INVALID_INTERVAL = "invalid_interval"
    LOOKUP_FAILURE = "lookup_failure"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    INVALID_DOCUMENT = "invalid_document"


class ClinicError(Exception):
    """Domain error tagged with an ErrorKind.

    Transport status codes are assigned at the API boundary, never here.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"ClinicError({self.kind.value!r}, {self.message!r})"
