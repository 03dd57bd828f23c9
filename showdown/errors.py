from __future__ import annotations


class ShowdownError(Exception):
    """Base class for errors raised by the Showdown client."""
    pass


class SessionConnectError(ShowdownError):
    """Raised when the transport cannot be opened."""
    pass


class SessionStateError(ShowdownError):
    """Raised when an operation needs a state the session is not in."""
    pass


class ServerResolutionError(ShowdownError):
    """Raised when a symbolic server name cannot be resolved."""
    pass


class LoginError(ShowdownError):
    """Raised when the login server rejects the credentials."""
    pass
