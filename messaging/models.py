"""Data models for groups, outbound requests and message payloads."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

# Group JIDs always use this server suffix
GROUP_SUFFIX = "@g.us"


def is_group_id(value: Optional[str]) -> bool:
    """Check whether a value follows the group identifier convention."""
    return bool(value) and value.endswith(GROUP_SUFFIX)


class Group(BaseModel):
    """A group the session participates in."""

    id: str
    name: str


@dataclass(frozen=True)
class AttachmentHandle:
    """A temporary file backing an uploaded attachment."""

    path: Path
    media_type: str
    filename: str


@dataclass
class OutboundRequest:
    """A single send request built from an HTTP call.

    `destination` is either a group id or a group name. `group_id` and
    `group_name` carry the legacy explicit fields and are only consulted
    when `destination` is empty.
    """

    destination: Optional[str] = None
    body: Optional[str] = None
    attachment: Optional[AttachmentHandle] = None
    group_id: Optional[str] = None
    group_name: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.body) or self.attachment is not None


@dataclass(frozen=True)
class TextPayload:
    """Text-only message."""

    text: str

    def as_content(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class ImagePayload:
    """Image message with an optional caption."""

    data: bytes
    media_type: str
    filename: str
    caption: Optional[str] = None

    def as_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {
            "image": self.data,
            "mimetype": self.media_type,
            "fileName": self.filename,
        }
        if self.caption:
            content["caption"] = self.caption
        return content


Payload = Union[TextPayload, ImagePayload]
