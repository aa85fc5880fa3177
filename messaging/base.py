"""Abstract transport session.

A transport session owns the authenticated connection to WhatsApp. It reports
lifecycle changes by calling the `emit` sink it was constructed with; the sink
is safe to call from any thread.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from .events import SessionEvent
from .models import Group, Payload

EventSink = Callable[[SessionEvent], None]


class TransportSession(ABC):
    """Base class for transport sessions."""

    # Dispatcher serializes sends when this is False
    concurrent_sends_safe: bool = True

    def __init__(self, credentials: Optional[Dict[str, Any]], emit: EventSink):
        self.credentials = credentials
        self.emit = emit

    @abstractmethod
    async def start(self) -> None:
        """Open the connection. Progress is reported through events."""

    @abstractmethod
    async def stop(self) -> None:
        """Close the connection."""

    @abstractmethod
    async def list_groups(self) -> List[Group]:
        """Return every group the account participates in."""

    @abstractmethod
    async def send(self, destination_id: str, payload: Payload) -> Optional[str]:
        """Send a payload and return the backend message id, if any.

        Raises:
            TransportError: on network or protocol failure.
        """


TransportFactory = Callable[[Optional[Dict[str, Any]], EventSink], TransportSession]
