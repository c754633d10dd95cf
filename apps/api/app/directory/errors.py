from __future__ import annotations


class DirectoryError(Exception):
    """Base error for calls to the external directory service."""


class DirectoryTransportError(DirectoryError):
    """An outbound call did not produce a usable answer.

    Covers timeouts, connection faults and any non-2xx status other than a
    lookup's 404. ``retry_after`` is the raw ``Retry-After`` header when the
    directory sent one; it is informational only.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: int | None = None,
        timed_out: bool = False,
        retry_after: str | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.timed_out = timed_out
        self.retry_after = retry_after
        super().__init__(f"{operation}: {message}")


class DirectoryProtocolError(DirectoryTransportError):
    """A 2xx response whose body is empty, not JSON, or not the expected shape."""

    def __init__(self, operation: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(operation, message, status_code=status_code)
