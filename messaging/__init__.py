"""WhatsApp session supervision and outbound delivery."""

from .base import TransportSession, TransportFactory, EventSink
from .events import (
    Connected,
    CredentialsUpdated,
    DisconnectReason,
    Disconnected,
    MessageReceived,
    PairingChallenge,
)
from .exceptions import (
    GatewayError,
    NotReadyError,
    InvalidRequestError,
    DestinationNotFoundError,
    BackendSendFailedError,
    TransportError,
)
from .models import Group, OutboundRequest, TextPayload, ImagePayload, AttachmentHandle
from .attachments import AttachmentStore
from .supervisor import SessionSupervisor, SessionState
from .resolver import DestinationResolver
from .dispatcher import OutboundDispatcher
from .commands import CommandResponder

__all__ = [
    "TransportSession",
    "TransportFactory",
    "EventSink",
    "Connected",
    "CredentialsUpdated",
    "DisconnectReason",
    "Disconnected",
    "MessageReceived",
    "PairingChallenge",
    "GatewayError",
    "NotReadyError",
    "InvalidRequestError",
    "DestinationNotFoundError",
    "BackendSendFailedError",
    "TransportError",
    "Group",
    "OutboundRequest",
    "TextPayload",
    "ImagePayload",
    "AttachmentHandle",
    "AttachmentStore",
    "SessionSupervisor",
    "SessionState",
    "DestinationResolver",
    "OutboundDispatcher",
    "CommandResponder",
]
