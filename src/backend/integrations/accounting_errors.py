"""Error taxonomy for the accounting-service connector.

Three failure kinds can end a call, and callers (and tests) need to tell them apart:
- TransportError: the HTTP exchange itself failed (network error, non-2xx status)
- DecodeError: bytes came back but are not a well-formed response envelope
- RemoteError: the envelope decoded fine and carries an error message from the service

None of them are retried here.
"""

from __future__ import annotations


class AccountingAPIError(RuntimeError):
    """Base class for every error raised by the accounting connector."""


class TransportError(AccountingAPIError):
    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(AccountingAPIError):
    pass


class RemoteError(AccountingAPIError):
    """The service answered with an error message.

    `str(err)` is exactly the message the service sent. `code` and `field` are the
    optional diagnostics some methods (time entries) return next to it.
    """

    def __init__(self, message: str, *, code: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.field = field
