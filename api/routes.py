"""HTTP routes for automation tools (n8n and friends)."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.settings import Settings
from messaging import (
    AttachmentStore,
    DestinationResolver,
    Group,
    InvalidRequestError,
    OutboundDispatcher,
    OutboundRequest,
    SessionSupervisor,
)
from .dependencies import (
    get_attachments,
    get_dispatcher,
    get_resolver,
    get_settings,
    get_supervisor,
)
from .uploads import is_empty_upload, normalize_content_type, read_image_bytes

logger = logging.getLogger(__name__)

router = APIRouter()


class SendRequest(BaseModel):
    """JSON body for the send endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    destination: Optional[str] = None
    message: Optional[str] = None
    group_id: Optional[str] = Field(default=None, alias="groupId")
    group_name: Optional[str] = Field(default=None, alias="groupName")


class SendResponse(BaseModel):
    ok: bool = True
    id: Optional[str] = None


class SessionStatus(BaseModel):
    state: str
    ready: bool
    logged_out: bool
    pairing_challenge: Optional[str] = None


def _text(value) -> Optional[str]:
    """Form values that are not plain strings (stray files) count as absent."""
    return value if isinstance(value, str) and value != "" else None


async def _read_json_request(request: Request) -> OutboundRequest:
    try:
        data = await request.json()
    except ValueError:
        raise InvalidRequestError("Invalid JSON body")
    if not isinstance(data, dict):
        raise InvalidRequestError("JSON body must be an object")

    try:
        body = SendRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid request: {e.errors()[0].get('msg')}")

    return OutboundRequest(
        destination=body.destination,
        body=body.message or None,
        group_id=body.group_id,
        group_name=body.group_name,
    )


async def _read_form_request(
    request: Request, settings: Settings, attachments: AttachmentStore
) -> OutboundRequest:
    form = await request.form()
    image = form.get("image")

    attachment = None
    if not is_empty_upload(image):
        data = await read_image_bytes(image, settings.max_image_bytes)
        media_type = normalize_content_type(image.content_type)
        attachment = await attachments.materialize(data, media_type, image.filename)

    return OutboundRequest(
        destination=_text(form.get("destination")),
        body=_text(form.get("message")),
        attachment=attachment,
        group_id=_text(form.get("groupId")),
        group_name=_text(form.get("groupName")),
    )


@router.get("/health")
async def health(supervisor: SessionSupervisor = Depends(get_supervisor)):
    """Readiness of the WhatsApp session."""
    return {"ok": supervisor.is_ready}


@router.get("/status", response_model=SessionStatus)
async def status(supervisor: SessionSupervisor = Depends(get_supervisor)):
    """Detailed session state, including a pending pairing QR payload."""
    return SessionStatus(
        state=supervisor.state.value,
        ready=supervisor.is_ready,
        logged_out=supervisor.logged_out,
        pairing_challenge=supervisor.pairing_challenge,
    )


@router.get("/groups", response_model=List[Group])
async def list_groups(resolver: DestinationResolver = Depends(get_resolver)):
    """List every group the connected account participates in."""
    return await resolver.list_groups()


@router.post("/send", response_model=SendResponse)
@router.post("/send-group", response_model=SendResponse)
async def send_message(
    request: Request,
    settings: Settings = Depends(get_settings),
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
    attachments: AttachmentStore = Depends(get_attachments),
):
    """Send a text and/or image message to a group.

    Accepts JSON (`destination`, `message`) or multipart form data with an
    optional `image` part. `groupId` / `groupName` are accepted in place of
    `destination`.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        outbound = await _read_json_request(request)
    else:
        outbound = await _read_form_request(request, settings, attachments)

    message_id = await dispatcher.send(outbound)
    return SendResponse(ok=True, id=message_id)
