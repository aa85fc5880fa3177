"""WhatsApp transport session backed by neonize (whatsmeow).

neonize runs its client on a blocking connect loop and invokes callbacks
from its own threads. The client loop runs in a daemon thread, blocking
calls are pushed to worker threads, and every callback is translated into
a session event handed to the supervisor's sink.
"""

import asyncio
import functools
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from neonize.client import NewClient
from neonize.events import ConnectedEv, DisconnectedEv, LoggedOutEv, MessageEv, PairStatusEv
from neonize.utils.jid import Jid2String, build_jid

from .base import EventSink, TransportFactory, TransportSession
from .events import (
    Connected,
    CredentialsUpdated,
    DisconnectReason,
    Disconnected,
    MessageReceived,
    PairingChallenge,
)
from .exceptions import TransportError
from .models import Group, ImagePayload, Payload, TextPayload

logger = logging.getLogger(__name__)


def _to_jid(value: str):
    user, _, server = value.partition("@")
    return build_jid(user, server or "s.whatsapp.net")


class WhatsAppTransport(TransportSession):
    """A single neonize client connection."""

    # neonize shares one client object across calls
    concurrent_sends_safe = False

    def __init__(
        self,
        credentials: Optional[Dict[str, Any]],
        emit: EventSink,
        database_path: Path,
    ):
        super().__init__(credentials, emit)
        self._database = str((credentials or {}).get("database") or database_path)
        Path(self._database).parent.mkdir(parents=True, exist_ok=True)

        self._client = NewClient(self._database)
        self._thread: Optional[threading.Thread] = None

        self._client.qr(self._on_qr)
        self._client.event(ConnectedEv)(self._on_connected)
        self._client.event(DisconnectedEv)(self._on_disconnected)
        self._client.event(LoggedOutEv)(self._on_logged_out)
        self._client.event(PairStatusEv)(self._on_pair_status)
        self._client.event(MessageEv)(self._on_message)

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        self._thread = threading.Thread(
            target=self._connect, name="whatsapp-session", daemon=True
        )
        self._thread.start()

    def _connect(self) -> None:
        try:
            self._client.connect()
        except Exception:
            logger.exception("WhatsApp client loop stopped with an error")

    async def stop(self) -> None:
        await asyncio.to_thread(self._client.disconnect)

    # ==================== Callbacks ====================

    def _on_qr(self, _client, data: bytes) -> None:
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        self.emit(PairingChallenge(data=data))

    def _on_connected(self, _client, _event) -> None:
        self.emit(Connected())

    def _on_disconnected(self, _client, _event) -> None:
        self.emit(Disconnected(reason=DisconnectReason.TRANSIENT, detail="connection closed"))

    def _on_logged_out(self, _client, event) -> None:
        detail = str(getattr(event, "Reason", "") or "") or "logged out"
        self.emit(Disconnected(reason=DisconnectReason.LOGGED_OUT, detail=detail))

    def _on_pair_status(self, _client, event) -> None:
        credentials = dict(self.credentials or {})
        credentials["database"] = self._database
        credentials["jid"] = Jid2String(event.ID)
        self.emit(CredentialsUpdated(credentials=credentials))

    def _on_message(self, _client, event) -> None:
        source = event.Info.MessageSource
        message = event.Message
        text = message.conversation or message.extendedTextMessage.text or None
        self.emit(
            MessageReceived(
                chat_id=Jid2String(source.Chat),
                text=text,
                from_me=bool(source.IsFromMe),
                message_id=event.Info.ID or None,
            )
        )

    # ==================== Operations ====================

    async def list_groups(self) -> List[Group]:
        try:
            groups = await asyncio.to_thread(self._client.get_joined_groups)
        except Exception as e:
            raise TransportError(str(e)) from e
        return [Group(id=Jid2String(g.JID), name=g.GroupName.Name) for g in groups]

    async def send(self, destination_id: str, payload: Payload) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._send_blocking, destination_id, payload)
        except Exception as e:
            raise TransportError(str(e)) from e

    def _send_blocking(self, destination_id: str, payload: Payload) -> Optional[str]:
        jid = _to_jid(destination_id)
        if isinstance(payload, ImagePayload):
            message = self._client.build_image_message(payload.data, caption=payload.caption)
            # Keep the type validated at upload instead of the sniffed one
            message.imageMessage.mimetype = payload.media_type
        elif isinstance(payload, TextPayload):
            message = payload.text
        else:
            raise TypeError(f"Unsupported payload: {type(payload).__name__}")
        response = self._client.send_message(jid, message)
        return getattr(response, "ID", None) or None


def create_transport_factory(database_path: Path) -> TransportFactory:
    """Build a factory producing WhatsApp sessions on the given database."""
    return functools.partial(WhatsAppTransport, database_path=database_path)
