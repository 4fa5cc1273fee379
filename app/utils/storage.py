import time
from typing import List, Optional

from ..config import get_settings
from ..errors import ValidationError
from ..schemas import FileType

ALLOWED_CONTENT_TYPES = {"application/pdf", "image/jpeg", "image/jpg", "image/png"}


def is_valid_file_type(content_type: Optional[str]) -> bool:
    return (content_type or "") in ALLOWED_CONTENT_TYPES


def is_valid_file_size(size: int, max_size: Optional[int] = None) -> bool:
    if max_size is None:
        max_size = get_settings().max_upload_bytes
    return size <= max_size


def validate_upload(
    content_type: Optional[str], size: int, max_size: Optional[int] = None
) -> None:
    """Raise ValidationError if the file would be rejected by the upload form."""
    if not is_valid_file_type(content_type):
        raise ValidationError(
            f"Unsupported file type: {content_type}. Upload a PDF, JPEG or PNG file."
        )
    if not is_valid_file_size(size, max_size):
        raise ValidationError(
            f"File is too large ({format_file_size(size)}). Maximum size is "
            f"{format_file_size(max_size or get_settings().max_upload_bytes)}."
        )


def file_type_for(content_type: str) -> FileType:
    return FileType.pdf if "pdf" in content_type else FileType.image


CONTENT_TYPES_BY_EXTENSION = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


def content_type_for(file_path: str) -> str:
    """Media type of a stored object, from its extension."""
    extension = file_path.rsplit(".", 1)[-1].lower()
    return CONTENT_TYPES_BY_EXTENSION.get(extension, "application/octet-stream")


def generate_file_path(
    user_id: str, file_name: str, timestamp_ms: Optional[int] = None
) -> str:
    """
    Build ``{user_id}/{epoch_millis}.{extension}``.

    Two uploads by the same user in the same millisecond collide; that case
    is not handled.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    extension = file_name.rsplit(".", 1)[-1]
    return f"{user_id}/{timestamp_ms}.{extension}"


def parse_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def sanitize_search_query(query: str) -> str:
    return query.strip().replace("%", "\\%").replace("_", "\\_")


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while size >= 1024 ** (index + 1) and index < len(units) - 1:
        index += 1
    value = round(size / 1024**index, 2)
    return f"{value:g} {units[index]}"
