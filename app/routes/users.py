# users.py
from typing import List

from fastapi import APIRouter, Depends

from supabase import Client

from .. import analytics, crud
from ..config import get_db
from ..schemas import (
    Note,
    Profile,
    ProfileUpdate,
    UserSettings,
    UserSettingsUpdate,
    UserStats,
)
from ..session import Session, get_current_principal, get_session
from .deps import result_or_raise

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/profile", response_model=Profile)
def get_my_profile(session: Session = Depends(get_session)):
    return session.profile


@router.patch("/me/profile", response_model=Profile)
def update_my_profile(
    updates: ProfileUpdate,
    session: Session = Depends(get_session),
    db: Client = Depends(get_db),
):
    return result_or_raise(crud.update_profile(db, session.user_id, updates))


@router.get("/me/settings", response_model=UserSettings)
def get_my_settings(session: Session = Depends(get_session)):
    return session.settings


@router.patch("/me/settings", response_model=UserSettings)
def update_my_settings(
    updates: UserSettingsUpdate,
    session: Session = Depends(get_session),
    db: Client = Depends(get_db),
):
    return result_or_raise(crud.update_settings(db, session.user_id, updates))


@router.get("/me/notes", response_model=List[Note])
def get_my_notes(session: Session = Depends(get_session), db: Client = Depends(get_db)):
    return result_or_raise(crud.get_notes_by_uploader(db, session.user_id))


@router.get("/me/stats", response_model=UserStats)
def get_my_stats(session: Session = Depends(get_session), db: Client = Depends(get_db)):
    return result_or_raise(analytics.get_user_stats(db, session.user_id))


@router.get(
    "/{user_id}/notes",
    response_model=List[Note],
    dependencies=[Depends(get_current_principal)],
)
def get_user_notes(user_id: str, db: Client = Depends(get_db)):
    return result_or_raise(crud.get_notes_by_uploader(db, user_id))
