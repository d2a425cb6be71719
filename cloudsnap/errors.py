"""
Error kinds raised by CloudSnap and their HTTP mapping.
"""
from contextlib import contextmanager
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    CONFIG = "config"
    UPSTREAM_NOT_FOUND = "upstream_not_found"
    UPSTREAM_CONFLICT = "upstream_conflict"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    UPSTREAM_UNKNOWN = "upstream_unknown"

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self]

    @property
    def is_upstream(self) -> bool:
        return self.value.startswith("upstream_")


STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.CONFIG: 500,
    ErrorKind.UPSTREAM_NOT_FOUND: 404,
    ErrorKind.UPSTREAM_CONFLICT: 409,
    ErrorKind.UPSTREAM_TIMEOUT: 504,
    ErrorKind.UPSTREAM_UNKNOWN: 500,
}


class CloudSnapError(Exception):
    """An error with an explicit kind; callers switch on ``kind``."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UPSTREAM_UNKNOWN):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def with_context(self, context: str) -> "CloudSnapError":
        """Return a copy whose message is prefixed with the failing operation."""
        return CloudSnapError(f"{context}: {self.message}", self.kind)

    def __repr__(self) -> str:
        return f"CloudSnapError({self.message!r}, kind={self.kind.value})"


def validation_error(message: str) -> CloudSnapError:
    return CloudSnapError(message, ErrorKind.VALIDATION)


def config_error(message: str) -> CloudSnapError:
    return CloudSnapError(message, ErrorKind.CONFIG)


@contextmanager
def upstream_context(action: str):
    """Prefix upstream failures raised inside the block with ``action``."""
    try:
        yield
    except CloudSnapError as e:
        if not e.kind.is_upstream:
            raise
        raise e.with_context(action) from e
