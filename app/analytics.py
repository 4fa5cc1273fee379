import logging

from supabase import Client

from .crud import NOTES_TABLE, PROFILES_TABLE
from .errors import DatabaseResult, NotFound, RecordError
from .schemas import NoteStats, PlatformStats, UserStats

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = "view_count, download_count"


def get_note_stats(db: Client, note_id: str) -> DatabaseResult[NoteStats]:
    try:
        result = (
            db.table(NOTES_TABLE)
            .select(COUNTER_COLUMNS)
            .eq("id", note_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to fetch note statistics: {e}")
        return DatabaseResult.failure(RecordError(f"Failed to fetch note statistics: {e}"))
    if not result.data:
        return DatabaseResult.failure(NotFound(f"Note {note_id} not found"))
    row = result.data[0]
    return DatabaseResult.success(
        NoteStats(
            views=row.get("view_count") or 0,
            downloads=row.get("download_count") or 0,
        )
    )


def get_user_stats(db: Client, user_id: str) -> DatabaseResult[UserStats]:
    """Totals over every note uploaded by ``user_id``."""
    try:
        result = (
            db.table(NOTES_TABLE)
            .select(COUNTER_COLUMNS)
            .eq("uploader_id", user_id)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to fetch user statistics: {e}")
        return DatabaseResult.failure(RecordError(f"Failed to fetch user statistics: {e}"))

    stats = UserStats()
    for row in result.data or []:
        stats.total_notes += 1
        stats.total_views += row.get("view_count") or 0
        stats.total_downloads += row.get("download_count") or 0
    return DatabaseResult.success(stats)


def get_platform_stats(db: Client) -> DatabaseResult[PlatformStats]:
    try:
        notes = db.table(NOTES_TABLE).select(COUNTER_COLUMNS).execute()
        profiles = db.table(PROFILES_TABLE).select("id").execute()
    except Exception as e:
        logger.error(f"Failed to fetch platform statistics: {e}")
        return DatabaseResult.failure(
            RecordError(f"Failed to fetch platform statistics: {e}")
        )

    rows = notes.data or []
    return DatabaseResult.success(
        PlatformStats(
            total_notes=len(rows),
            total_users=len(profiles.data or []),
            total_views=sum(row.get("view_count") or 0 for row in rows),
            total_downloads=sum(row.get("download_count") or 0 for row in rows),
        )
    )
