"""Events emitted by a transport session to the supervisor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class DisconnectReason(str, Enum):
    """Classification of a lost connection."""

    LOGGED_OUT = "logged_out"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class PairingChallenge:
    """Pairing data (QR payload) the operator must scan."""

    data: str


@dataclass(frozen=True)
class Connected:
    """The backend confirmed the session."""


@dataclass(frozen=True)
class Disconnected:
    """The connection was lost."""

    reason: DisconnectReason = DisconnectReason.TRANSIENT
    detail: Optional[str] = None

    @property
    def logged_out(self) -> bool:
        return self.reason == DisconnectReason.LOGGED_OUT


@dataclass(frozen=True)
class CredentialsUpdated:
    """New credentials that must be persisted."""

    credentials: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MessageReceived:
    """An inbound message seen by the session."""

    chat_id: str
    text: Optional[str] = None
    from_me: bool = False
    message_id: Optional[str] = None


SessionEvent = Union[
    PairingChallenge, Connected, Disconnected, CredentialsUpdated, MessageReceived
]
