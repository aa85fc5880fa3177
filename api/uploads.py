"""Validation helpers for uploaded images."""

from starlette.datastructures import UploadFile

from messaging.exceptions import InvalidRequestError

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
}

ALLOWED_IMAGE_EXTENSIONS = (".jpeg", ".jpg", ".png", ".gif", ".webp")

IMAGE_TYPE_ERROR = "Only images are allowed (jpeg, jpg, png, gif, webp)"


def is_empty_upload(upload) -> bool:
    """HTML forms send an unnamed part when no file was picked."""
    return not isinstance(upload, UploadFile) or not upload.filename


def normalize_content_type(content_type: str) -> str:
    return (content_type or "").lower().split(";", 1)[0].strip()


def validate_image_file(upload: UploadFile) -> str:
    """Check both the declared content type and the filename extension.

    Returns the normalized content type.
    """
    content_type = normalize_content_type(upload.content_type)
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidRequestError(IMAGE_TYPE_ERROR)
    if not upload.filename.lower().endswith(ALLOWED_IMAGE_EXTENSIONS):
        raise InvalidRequestError(IMAGE_TYPE_ERROR)
    return content_type


async def read_image_bytes(upload: UploadFile, max_bytes: int) -> bytes:
    """Read validated image bytes, enforcing the size limit."""
    validate_image_file(upload)
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InvalidRequestError(f"Image exceeds the {max_bytes} byte limit")
    if not data:
        raise InvalidRequestError("Uploaded image is empty")
    return data
