# app/core/errors.py
"""
Domain errors raised by the routing and navigation services.

Only InputInvalid and SessionNotFound are meant to reach API callers;
the rest are recovered inside the services (see RoutingService).
"""


class RoutingError(Exception):
    """Base class for every error raised by the core services."""


class InputInvalid(RoutingError):
    """Malformed coordinate pair or out-of-range value."""


class RouterUnavailable(RoutingError):
    """External router failed, timed out or returned a non-Ok response."""


class NoConnectingPath(RoutingError):
    """The fallback road graph has no path between the snapped nodes."""


class SessionNotFound(RoutingError):
    """Unknown navigation session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Navigation session {session_id!r} not found")
        self.session_id = session_id


class SessionExpired(SessionNotFound):
    """Navigation session was removed by the expiry sweep."""


class ClassificationUnavailable(RoutingError):
    """Obstacle classifier failed or returned an unusable answer."""
