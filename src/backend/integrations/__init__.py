"""Integration adapters for the accounting service's XML API.

Keep these modules small and testable:
- No web framework request/response objects
- Pure IO in `accounting_client`, pure parsing in `accounting_envelope`
"""

from .accounting_auth import OAuthPlaintextToken
from .accounting_client import AccountingClient
from .accounting_envelope import Client, Project, Task, TimeEntry, User
from .accounting_errors import AccountingAPIError, DecodeError, RemoteError, TransportError

__all__ = [
    "AccountingAPIError",
    "AccountingClient",
    "Client",
    "DecodeError",
    "OAuthPlaintextToken",
    "Project",
    "RemoteError",
    "Task",
    "TimeEntry",
    "TransportError",
    "User",
]
