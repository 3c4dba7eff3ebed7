"""Exceptions raised by the RSC reporting toolkit."""

from typing import Any


class RSCReportError(Exception):
    """Base exception for the toolkit."""


class SessionError(RSCReportError):
    """No usable RSC session (missing credentials, failed token exchange)."""


class PreconditionError(RSCReportError):
    """A lookup performed before any network call failed (unknown ID etc.)."""


class GraphQLTransportError(RSCReportError):
    """The HTTP request to the GraphQL endpoint failed."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        # Include response body in the message for debugging
        full_message = message
        if response:
            text = str(response)
            full_message = f"{message} - Response: {text[:500]}"
        super().__init__(full_message)
        self.status_code = status_code
        self.response = response
