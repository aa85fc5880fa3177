"""Gateway error types.

Errors raised on the request path carry the HTTP status they map to, so the
API layer can translate them without knowing about each case.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict:
        """Body returned to the caller."""
        return {"error": self.message}


class NotReadyError(GatewayError):
    """The WhatsApp session is not connected."""

    status_code = 503
    default_message = "WhatsApp is not ready"


class InvalidRequestError(GatewayError):
    """The request is malformed or missing required content."""

    status_code = 400
    default_message = "Invalid request"


class DestinationNotFoundError(GatewayError):
    """The destination could not be resolved to a group id."""

    status_code = 404
    default_message = "Group not found. Use /groups to list available groups."


class BackendSendFailedError(GatewayError):
    """The backend rejected or failed a request."""

    status_code = 500
    default_message = "Failed to reach WhatsApp"


class TransportError(Exception):
    """Network or protocol failure raised by a transport session."""
