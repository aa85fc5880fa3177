"""Outbound delivery path."""

import logging
from typing import Optional

from .attachments import AttachmentStore
from .exceptions import BackendSendFailedError, InvalidRequestError, NotReadyError, TransportError
from .models import ImagePayload, OutboundRequest, Payload, TextPayload
from .resolver import DestinationResolver
from .supervisor import SessionSupervisor

logger = logging.getLogger(__name__)


class OutboundDispatcher:
    """Validates, resolves and sends outbound messages.

    The attachment of a request is released on every exit path, whether the
    send succeeded, resolution failed or the backend rejected the message.
    """

    def __init__(
        self,
        supervisor: SessionSupervisor,
        resolver: DestinationResolver,
        attachments: AttachmentStore,
    ):
        self._supervisor = supervisor
        self._resolver = resolver
        self._attachments = attachments

    async def send(self, request: OutboundRequest) -> Optional[str]:
        """Send a request and return the backend message id (may be None).

        Raises:
            NotReadyError: If the session is not connected.
            InvalidRequestError: If neither text nor attachment is present.
            DestinationNotFoundError: If the destination cannot be resolved.
            BackendSendFailedError: If the backend fails the send.
        """
        try:
            return await self._send(request)
        finally:
            if request.attachment is not None:
                await self._release(request)

    async def _send(self, request: OutboundRequest) -> Optional[str]:
        if not self._supervisor.is_ready:
            raise NotReadyError()

        if not request.has_content:
            raise InvalidRequestError("message or image is required")

        jid = await self._resolver.resolve(
            destination=request.destination,
            group_id=request.group_id,
            group_name=request.group_name,
        )
        payload = await self._build_payload(request)

        # Readiness may have dropped while resolving; send re-checks it
        try:
            message_id = await self._supervisor.send(jid, payload)
        except TransportError as e:
            logger.error(f"Failed to send message to {jid}: {e}")
            raise BackendSendFailedError(str(e) or None) from e

        logger.info(f"Sent {type(payload).__name__} to {jid} (id={message_id})")
        return message_id

    async def _build_payload(self, request: OutboundRequest) -> Payload:
        attachment = request.attachment
        if attachment is None:
            return TextPayload(text=request.body)

        data = await self._attachments.read(attachment)
        return ImagePayload(
            data=data,
            media_type=attachment.media_type,
            filename=attachment.filename,
            caption=request.body or None,
        )

    async def _release(self, request: OutboundRequest) -> None:
        try:
            await self._attachments.release(request.attachment)
        except Exception as e:
            logger.error(f"Failed to remove temporary file {request.attachment.path}: {e}")
