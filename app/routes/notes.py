# notes.py
from dataclasses import asdict
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile

from supabase import Client

from .. import analytics, crud, services
from ..config import get_db
from ..filters import Catalog, FilterState
from ..schemas import Note, NoteStats, NoteUpdate, PreviewUrl
from ..session import Session, get_current_principal, get_session
from .deps import result_or_raise

router = APIRouter(
    prefix="/notes", tags=["notes"], dependencies=[Depends(get_current_principal)]
)

SORTABLE_COLUMNS = ("created_at", "title", "course", "lecturer", "view_count", "download_count")


@router.get("/", response_model=List[Note])
def get_notes(
    order_by: str = Query("created_at", pattern=f"^({'|'.join(SORTABLE_COLUMNS)})$"),
    ascending: bool = False,
    limit: Optional[int] = Query(None, ge=1),
    db: Client = Depends(get_db),
):
    return result_or_raise(crud.list_notes(db, order_by, ascending, limit))


@router.get("/recent", response_model=List[Note])
def get_recent_notes(limit: Optional[int] = Query(None, ge=1), db: Client = Depends(get_db)):
    return result_or_raise(crud.get_recent_notes(db, limit))


@router.get("/popular", response_model=List[Note])
def get_popular_notes(limit: Optional[int] = Query(None, ge=1), db: Client = Depends(get_db)):
    return result_or_raise(crud.get_popular_notes(db, limit))


@router.get("/search", response_model=List[Note])
def search_notes(q: str = Query(..., description="Text to look for"), db: Client = Depends(get_db)):
    return result_or_raise(crud.search_notes(db, q))


@router.get("/browse")
def browse_notes(
    search: str = "",
    course: str = "all",
    lecturer: str = "all",
    tag: str = "all",
    db: Client = Depends(get_db),
):
    """
    Filter the full note collection the way the browse page does.

    - Course, lecturer and tag match exactly; ``all`` disables a filter
    - The search term matches title, course, lecturer or any tag, ignoring case
    - Facets are derived from the unfiltered collection
    """
    notes = result_or_raise(crud.list_notes(db))
    filters = (
        FilterState()
        .with_search_term(search)
        .with_course(course)
        .with_lecturer(lecturer)
        .with_tag(tag)
    )
    catalog = Catalog.from_notes(notes, filters)
    return {
        "notes": catalog.visible(),
        "filters": asdict(filters),
        **catalog.facets(),
    }


@router.get("/courses", response_model=List[str])
def get_courses(db: Client = Depends(get_db)):
    return result_or_raise(crud.get_courses(db))


@router.get("/lecturers", response_model=List[str])
def get_lecturers(db: Client = Depends(get_db)):
    return result_or_raise(crud.get_lecturers(db))


@router.post("/", response_model=Note, status_code=201)
async def upload_note(
    file: UploadFile = File(...),
    title: str = Form(...),
    course: str = Form(...),
    lecturer: str = Form(...),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma separated"),
    anonymous: Optional[bool] = Form(None),
    session: Session = Depends(get_session),
    db: Client = Depends(get_db),
):
    data = await file.read()
    return result_or_raise(
        services.upload_note(
            db,
            session,
            file_name=file.filename or "upload",
            content_type=file.content_type,
            data=data,
            title=title,
            course=course,
            lecturer=lecturer,
            description=description,
            tags=tags,
            anonymous=anonymous,
        )
    )


@router.get("/{note_id}", response_model=Note)
def get_note(note_id: str, db: Client = Depends(get_db)):
    return result_or_raise(crud.get_note(db, note_id))


@router.patch("/{note_id}", response_model=Note)
def update_note(
    note_id: str,
    updates: NoteUpdate,
    session: Session = Depends(get_session),
    db: Client = Depends(get_db),
):
    return result_or_raise(services.update_note(db, note_id, session.user_id, updates))


@router.delete("/{note_id}", status_code=204)
def delete_note(
    note_id: str, session: Session = Depends(get_session), db: Client = Depends(get_db)
):
    result_or_raise(services.delete_note(db, note_id, session.user_id))
    return Response(status_code=204)


@router.post("/{note_id}/view", response_model=Note)
def view_note(note_id: str, db: Client = Depends(get_db)):
    return result_or_raise(services.view_note(db, note_id))


@router.get("/{note_id}/download")
def download_note(note_id: str, db: Client = Depends(get_db)):
    download = result_or_raise(services.download_note(db, note_id))
    return Response(
        content=download.content,
        media_type=download.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(download.filename)}"
        },
    )


@router.get("/{note_id}/preview", response_model=PreviewUrl)
def preview_note(note_id: str, db: Client = Depends(get_db)):
    return result_or_raise(services.generate_preview_url(db, note_id))


@router.get("/{note_id}/stats", response_model=NoteStats)
def get_note_stats(note_id: str, db: Client = Depends(get_db)):
    return result_or_raise(analytics.get_note_stats(db, note_id))
