import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaValidationError
from supabase import Client

from .config import get_settings
from .errors import (
    ConfigurationError,
    DatabaseResult,
    NotFound,
    PartialFailure,
    RecordError,
    ValidationError,
)
from .schemas import (
    Note,
    NoteCreate,
    NoteUpdate,
    Profile,
    ProfileCreate,
    ProfileUpdate,
    UserSettings,
    UserSettingsUpdate,
)
from .utils.storage import sanitize_search_query

logger = logging.getLogger(__name__)

NOTES_TABLE = "notes"
PROFILES_TABLE = "profiles"
SETTINGS_COLUMNS = "anonymous_uploads, full_name, email_notifications"

# PostgREST / Postgres codes for a procedure that does not exist
_MISSING_PROCEDURE_CODES = {"PGRST202", "42883"}


def _schema_error(error: SchemaValidationError) -> ValidationError:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
    return ValidationError(problems)


def _record_error(message: str, error: Exception) -> RecordError:
    logger.error(f"{message}: {error}")
    return RecordError(f"{message}: {getattr(error, 'message', None) or error}")


def _notes(rows: Optional[List[Dict[str, Any]]]) -> List[Note]:
    return [Note(**row) for row in rows or []]


# Notes


def list_notes(
    db: Client,
    order_by: str = "created_at",
    ascending: bool = False,
    limit: Optional[int] = None,
) -> DatabaseResult[List[Note]]:
    """Get notes ordered by ``order_by``; an empty table gives an empty list."""
    try:
        query = db.table(NOTES_TABLE).select("*").order(order_by, desc=not ascending)
        if limit is not None:
            query = query.limit(limit)
        result = query.execute()
        return DatabaseResult.success(_notes(result.data))
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to fetch notes", e))


def get_recent_notes(db: Client, limit: Optional[int] = None) -> DatabaseResult[List[Note]]:
    if limit is None:
        limit = get_settings().recent_notes_limit
    return list_notes(db, "created_at", ascending=False, limit=limit)


def get_popular_notes(db: Client, limit: Optional[int] = None) -> DatabaseResult[List[Note]]:
    """Most viewed notes first, ties broken by downloads."""
    if limit is None:
        limit = get_settings().recent_notes_limit
    try:
        result = (
            db.table(NOTES_TABLE)
            .select("*")
            .order("view_count", desc=True)
            .order("download_count", desc=True)
            .limit(limit)
            .execute()
        )
        return DatabaseResult.success(_notes(result.data))
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to fetch popular notes", e))


def _get_notes_where(db: Client, column: str, value: str, message: str):
    try:
        result = (
            db.table(NOTES_TABLE)
            .select("*")
            .eq(column, value)
            .order("created_at", desc=True)
            .execute()
        )
        return DatabaseResult.success(_notes(result.data))
    except Exception as e:
        return DatabaseResult.failure(_record_error(message, e))


def get_notes_by_uploader(db: Client, user_id: str) -> DatabaseResult[List[Note]]:
    return _get_notes_where(db, "uploader_id", user_id, "Failed to fetch user notes")


def get_notes_by_course(db: Client, course: str) -> DatabaseResult[List[Note]]:
    return _get_notes_where(db, "course", course, "Failed to fetch notes by course")


def get_notes_by_lecturer(db: Client, lecturer: str) -> DatabaseResult[List[Note]]:
    return _get_notes_where(
        db, "lecturer", lecturer, "Failed to fetch notes by lecturer"
    )


def search_notes(db: Client, query: str) -> DatabaseResult[List[Note]]:
    """
    Case-insensitive substring search on title, course, lecturer and description.

    Commas and parentheses are dropped from the term since they delimit the
    PostgREST ``or`` filter.
    """
    term = sanitize_search_query(query)
    for reserved in ",()":
        term = term.replace(reserved, " ")
    term = term.strip()
    if not term:
        return DatabaseResult.success([])

    pattern = f"%{term}%"
    condition = ",".join(
        f"{column}.ilike.{pattern}"
        for column in ("title", "course", "lecturer", "description")
    )
    try:
        result = (
            db.table(NOTES_TABLE)
            .select("*")
            .or_(condition)
            .order("created_at", desc=True)
            .execute()
        )
        return DatabaseResult.success(_notes(result.data))
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to search notes", e))


def _distinct_column(db: Client, column: str, message: str) -> DatabaseResult[List[str]]:
    try:
        result = db.table(NOTES_TABLE).select(column).order(column).execute()
        values = list(dict.fromkeys(row[column] for row in result.data or []))
        return DatabaseResult.success(values)
    except Exception as e:
        return DatabaseResult.failure(_record_error(message, e))


def get_courses(db: Client) -> DatabaseResult[List[str]]:
    return _distinct_column(db, "course", "Failed to fetch courses")


def get_lecturers(db: Client) -> DatabaseResult[List[str]]:
    return _distinct_column(db, "lecturer", "Failed to fetch lecturers")


def get_note(db: Client, note_id: str) -> DatabaseResult[Note]:
    try:
        result = db.table(NOTES_TABLE).select("*").eq("id", note_id).limit(1).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to fetch note", e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Note {note_id} not found"))
    return DatabaseResult.success(Note(**result.data[0]))


def note_exists(db: Client, note_id: str) -> bool:
    return get_note(db, note_id).ok


def create_note(db: Client, note_data: Union[NoteCreate, Dict[str, Any]]) -> DatabaseResult[Note]:
    """Create a new note; the server assigns id and created_at."""
    try:
        if not isinstance(note_data, NoteCreate):
            note_data = NoteCreate(**note_data)
    except SchemaValidationError as e:
        return DatabaseResult.failure(_schema_error(e))

    row = note_data.model_dump(mode="json")
    row.update(download_count=0, view_count=0)
    try:
        result = db.table(NOTES_TABLE).insert(row).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to create note", e))
    if not result.data:
        return DatabaseResult.failure(RecordError("Failed to create note: no row returned"))
    note = Note(**result.data[0])
    logger.info(f"Created note {note.id} at {note.file_path}")
    return DatabaseResult.success(note)


def update_note(
    db: Client, note_id: str, updates: Union[NoteUpdate, Dict[str, Any]]
) -> DatabaseResult[Note]:
    """Merge the given fields into an existing note."""
    try:
        if not isinstance(updates, NoteUpdate):
            updates = NoteUpdate(**updates)
    except SchemaValidationError as e:
        return DatabaseResult.failure(_schema_error(e))

    fields = updates.model_dump(exclude_unset=True)
    if not fields:
        return get_note(db, note_id)
    try:
        result = db.table(NOTES_TABLE).update(fields).eq("id", note_id).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to update note", e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Note {note_id} not found"))
    return DatabaseResult.success(Note(**result.data[0]))


def delete_note(db: Client, note_id: str) -> DatabaseResult[bool]:
    """Delete the note row. The backing file is the caller's responsibility."""
    try:
        db.table(NOTES_TABLE).delete().eq("id", note_id).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to delete note", e))
    logger.info(f"Deleted note {note_id}")
    return DatabaseResult.success(True)


def _is_missing_procedure(error: Exception) -> bool:
    if getattr(error, "code", None) in _MISSING_PROCEDURE_CODES:
        return True
    return "could not find the function" in str(error).lower()


def _increment_without_procedure(db: Client, note_id: str, column: str) -> DatabaseResult[Note]:
    # Read-modify-write: two concurrent callers can read the same count and
    # one of the increments is lost.
    logger.warning(
        f"Incrementing {column} for note {note_id} without an atomic procedure"
    )
    current = get_note(db, note_id)
    if not current.ok:
        return current
    value = getattr(current.data, column) + 1
    try:
        result = (
            db.table(NOTES_TABLE).update({column: value}).eq("id", note_id).execute()
        )
    except Exception as e:
        return DatabaseResult.failure(_record_error(f"Failed to increment {column}", e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Note {note_id} not found"))
    return DatabaseResult.success(Note(**result.data[0]))


def _increment_counter(
    db: Client,
    note_id: str,
    column: str,
    procedure: str,
    allow_fallback: Optional[bool] = None,
) -> DatabaseResult[Note]:
    if allow_fallback is None:
        allow_fallback = get_settings().allow_non_atomic_counters

    try:
        db.rpc(procedure, {"note_id": note_id}).execute()
    except Exception as e:
        if not _is_missing_procedure(e):
            return DatabaseResult.failure(
                _record_error(f"Failed to increment {column}", e)
            )
        if not allow_fallback:
            logger.error(f"Procedure {procedure} is not installed: {e}")
            return DatabaseResult.failure(
                ConfigurationError(
                    f"Procedure {procedure} is missing; install it or set "
                    "ALLOW_NON_ATOMIC_COUNTERS"
                )
            )
        return _increment_without_procedure(db, note_id, column)

    refreshed = get_note(db, note_id)
    if isinstance(refreshed.error, NotFound):
        return refreshed
    if not refreshed.ok:
        logger.warning(f"Incremented {column} for note {note_id} but refresh failed")
        return DatabaseResult.failure(
            PartialFailure(f"{column} incremented but the note could not be reloaded")
        )
    return refreshed


def increment_view_count(
    db: Client, note_id: str, allow_fallback: Optional[bool] = None
) -> DatabaseResult[Note]:
    return _increment_counter(
        db, note_id, "view_count", "increment_view_count", allow_fallback
    )


def increment_download_count(
    db: Client, note_id: str, allow_fallback: Optional[bool] = None
) -> DatabaseResult[Note]:
    return _increment_counter(
        db, note_id, "download_count", "increment_download_count", allow_fallback
    )


# Profiles


def get_profile(db: Client, user_id: str) -> DatabaseResult[Profile]:
    try:
        result = db.table(PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to fetch profile", e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Profile {user_id} not found"))
    return DatabaseResult.success(Profile(**result.data[0]))


def profile_exists(db: Client, user_id: str) -> bool:
    return get_profile(db, user_id).ok


def create_profile(
    db: Client, profile_data: Union[ProfileCreate, Dict[str, Any]]
) -> DatabaseResult[Profile]:
    try:
        if not isinstance(profile_data, ProfileCreate):
            profile_data = ProfileCreate(**profile_data)
    except SchemaValidationError as e:
        return DatabaseResult.failure(_schema_error(e))

    try:
        result = db.table(PROFILES_TABLE).insert(profile_data.model_dump()).execute()
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to create profile", e))
    if not result.data:
        return DatabaseResult.failure(RecordError("Failed to create profile: no row returned"))
    logger.info(f"Created profile for user {profile_data.id}")
    return DatabaseResult.success(Profile(**result.data[0]))


def _update_profile_row(
    db: Client, user_id: str, fields: Dict[str, Any], columns: str, message: str
) -> DatabaseResult[Dict[str, Any]]:
    try:
        if fields:
            result = (
                db.table(PROFILES_TABLE).update(fields).eq("id", user_id).execute()
            )
        else:
            result = (
                db.table(PROFILES_TABLE).select(columns).eq("id", user_id).execute()
            )
    except Exception as e:
        return DatabaseResult.failure(_record_error(message, e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Profile {user_id} not found"))
    return DatabaseResult.success(result.data[0])


def update_profile(
    db: Client, user_id: str, updates: Union[ProfileUpdate, Dict[str, Any]]
) -> DatabaseResult[Profile]:
    try:
        if not isinstance(updates, ProfileUpdate):
            updates = ProfileUpdate(**updates)
    except SchemaValidationError as e:
        return DatabaseResult.failure(_schema_error(e))

    row = _update_profile_row(
        db, user_id, updates.model_dump(exclude_unset=True), "*", "Failed to update profile"
    )
    if not row.ok:
        return DatabaseResult.failure(row.error)
    return DatabaseResult.success(Profile(**row.data))


def get_user_settings(db: Client, user_id: str) -> DatabaseResult[UserSettings]:
    """Privacy settings projected out of the profile row."""
    try:
        result = (
            db.table(PROFILES_TABLE)
            .select(SETTINGS_COLUMNS)
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        return DatabaseResult.failure(_record_error("Failed to fetch user settings", e))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Profile {user_id} not found"))
    return DatabaseResult.success(UserSettings.from_row(result.data[0]))


def update_settings(
    db: Client, user_id: str, updates: Union[UserSettingsUpdate, Dict[str, Any]]
) -> DatabaseResult[UserSettings]:
    try:
        if not isinstance(updates, UserSettingsUpdate):
            updates = UserSettingsUpdate(**updates)
    except SchemaValidationError as e:
        return DatabaseResult.failure(_schema_error(e))

    row = _update_profile_row(
        db,
        user_id,
        updates.model_dump(exclude_unset=True),
        SETTINGS_COLUMNS,
        "Failed to update user settings",
    )
    if not row.ok:
        return DatabaseResult.failure(row.error)
    return DatabaseResult.success(UserSettings.from_row(row.data))
