"""
Note workflows composed from the record and storage gateways.

Primary failures come back as failed ``DatabaseResult`` values. Secondary
side effects (counter bumps, file cleanup) are logged and never block the
primary operation.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from supabase import Client

from . import crud
from .config import get_settings
from .errors import (
    ConfigurationError,
    DatabaseResult,
    Forbidden,
    NotFound,
    PartialFailure,
    ValidationError,
)
from .schemas import Note, NoteCreate, NoteUpdate, PreviewUrl
from .session import Session, resolve_uploader_name
from .storage.supabase_storage import (
    delete_file,
    download_file,
    get_signed_url,
    upload_file,
)
from .utils.storage import (
    content_type_for,
    file_type_for,
    generate_file_path,
    parse_tags,
    validate_upload,
)

logger = logging.getLogger(__name__)


def _log_counter_failure(column: str, note_id: str, error) -> None:
    if isinstance(error, ConfigurationError):
        # counters stop moving until the procedure is installed
        logger.error(f"Cannot increment {column} for {note_id}: {error.message}")
    else:
        logger.warning(f"Failed to increment {column} for {note_id}: {error.message}")


@dataclass(frozen=True)
class Download:
    note: Note
    content: bytes
    filename: str
    content_type: str


def download_filename(note: Note) -> str:
    extension = "pdf" if note.file_type == "pdf" else "jpg"
    return f"{note.title}.{extension}"


def upload_note(
    db: Client,
    session: Session,
    file_name: str,
    content_type: Optional[str],
    data: bytes,
    title: str,
    course: str,
    lecturer: str,
    description: Optional[str] = None,
    tags: Union[str, List[str], None] = None,
    anonymous: Optional[bool] = None,
) -> DatabaseResult[Note]:
    """
    Store the file, then create the note record pointing at it.

    Validation runs before any remote call. If the record insert fails after
    the file was written, the file stays in the bucket.
    """
    try:
        validate_upload(content_type, len(data))
    except ValidationError as e:
        return DatabaseResult.failure(e)

    if anonymous is None:
        anonymous = session.profile.anonymous_uploads
    if isinstance(tags, str) or tags is None:
        tags = parse_tags(tags)

    file_path = generate_file_path(session.user_id, file_name)
    try:
        note_data = NoteCreate(
            title=title,
            course=course,
            lecturer=lecturer,
            description=description or None,
            file_path=file_path,
            file_type=file_type_for(content_type),
            tags=tags,
            uploader_id=session.user_id,
            uploader_name=resolve_uploader_name(
                session.principal, session.profile, anonymous
            ),
        )
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        return DatabaseResult.failure(ValidationError(str(e)))

    stored = upload_file(db, file_path, data, content_type)
    if not stored.ok:
        return DatabaseResult.failure(stored.error)

    created = crud.create_note(db, note_data)
    if not created.ok:
        logger.warning(f"Note record failed after upload; {file_path} is orphaned")
    return created


def update_note(
    db: Client, note_id: str, requester_id: str, updates: Union[NoteUpdate, Dict[str, Any]]
) -> DatabaseResult[Note]:
    existing = crud.get_note(db, note_id)
    if not existing.ok:
        return existing
    if existing.data.uploader_id != requester_id:
        return DatabaseResult.failure(Forbidden("Only the uploader can edit this note"))
    return crud.update_note(db, note_id, updates)


def delete_note(db: Client, note_id: str, requester_id: str) -> DatabaseResult[bool]:
    """Remove the backing file (best effort), then the record."""
    existing = crud.get_note(db, note_id)
    if isinstance(existing.error, NotFound):
        # already gone
        return crud.delete_note(db, note_id)
    if not existing.ok:
        return DatabaseResult.failure(existing.error)
    note = existing.data
    if note.uploader_id != requester_id:
        return DatabaseResult.failure(Forbidden("Only the uploader can delete this note"))

    removed = delete_file(db, note.file_path)
    if not removed.ok:
        cleanup = PartialFailure(
            f"Could not delete {note.file_path}: {removed.error.message}"
        )
        logger.warning(cleanup.message)

    return crud.delete_note(db, note_id)


def view_note(db: Client, note_id: str) -> DatabaseResult[Note]:
    """Count a view and return the note, incremented if the counter call worked."""
    counted = crud.increment_view_count(db, note_id)
    if counted.ok:
        return counted
    _log_counter_failure("view_count", note_id, counted.error)
    return crud.get_note(db, note_id)


def download_note(db: Client, note_id: str) -> DatabaseResult[Download]:
    existing = crud.get_note(db, note_id)
    if not existing.ok:
        return DatabaseResult.failure(existing.error)
    note = existing.data

    counted = crud.increment_download_count(db, note_id)
    if counted.ok:
        note = counted.data
    else:
        _log_counter_failure("download_count", note_id, counted.error)

    content = download_file(db, note.file_path)
    if not content.ok:
        return DatabaseResult.failure(content.error)

    return DatabaseResult.success(
        Download(
            note=note,
            content=content.data,
            filename=download_filename(note),
            content_type=content_type_for(note.file_path),
        )
    )


def generate_preview_url(db: Client, note_id: str) -> DatabaseResult[PreviewUrl]:
    existing = crud.get_note(db, note_id)
    if not existing.ok:
        return DatabaseResult.failure(existing.error)

    ttl = get_settings().signed_url_ttl
    signed = get_signed_url(db, existing.data.file_path, ttl)
    if not signed.ok:
        return DatabaseResult.failure(signed.error)
    return DatabaseResult.success(PreviewUrl(url=signed.data, expires_in=ttl))
