"""
Protocol for the authenticated directory session the engine runs against.

Implementations (AccessTokenSession, ClientCredentialsSession, test fakes) hand
out an httpx.Client that already carries bearer auth and the Graph base URL.
The session is passed into every engine call; there is no global connection.
"""

from typing import Protocol, runtime_checkable

import httpx


@runtime_checkable
class DirectorySession(Protocol):
    """Protocol for a signed-in Microsoft Graph session."""

    @property
    def client(self) -> httpx.Client:
        """HTTP client with base URL, timeout and Authorization configured."""
        ...

    def ensure_signed_in(self) -> None:
        """Acquire credentials if needed. Raise AuthenticationError on failure."""
        ...
