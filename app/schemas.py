# schemas.py
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

ANONYMOUS_UPLOADER = "Anonymous"


class FileType(str, Enum):
    pdf = "pdf"
    image = "image"


class Note(BaseModel):
    id: str
    title: str
    course: str
    lecturer: str
    description: Optional[str] = None
    file_path: str
    file_type: FileType
    tags: List[str] = Field(default_factory=list)
    uploader_id: str
    uploader_name: str
    created_at: Optional[str] = None
    download_count: int = 0
    view_count: int = 0

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, value):
        return value or []

    @field_validator("download_count", "view_count", mode="before")
    @classmethod
    def _null_counts(cls, value):
        return value or 0


class NoteCreate(BaseModel):
    """Fields supplied by the uploader; id, created_at and counters are assigned on insert."""

    title: str
    course: str
    lecturer: str
    description: Optional[str] = None
    file_path: str
    file_type: FileType
    tags: List[str] = Field(default_factory=list)
    uploader_id: str
    uploader_name: str

    @field_validator(
        "title", "course", "lecturer", "file_path", "uploader_id", "uploader_name"
    )
    @classmethod
    def _required(cls, value: str, info):
        value = value.strip()
        if not value:
            raise ValueError(f"{info.field_name} is required")
        return value


class NoteUpdate(BaseModel):
    """Editable note fields. Counters only move through the increment procedures."""

    title: Optional[str] = None
    course: Optional[str] = None
    lecturer: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "course", "lecturer")
    @classmethod
    def _not_blank(cls, value: Optional[str], info):
        if value is not None and not value.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return value


class Profile(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    anonymous_uploads: bool = False
    email_notifications: bool = True
    created_at: Optional[str] = None

    @field_validator("anonymous_uploads", mode="before")
    @classmethod
    def _anonymous_default(cls, value):
        return False if value is None else value

    @field_validator("email_notifications", mode="before")
    @classmethod
    def _notifications_default(cls, value):
        return True if value is None else value


class ProfileCreate(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    anonymous_uploads: bool = False
    email_notifications: bool = True


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    anonymous_uploads: Optional[bool] = None
    email_notifications: Optional[bool] = None


class UserSettings(BaseModel):
    anonymous_uploads: bool = False
    full_name: Optional[str] = None
    email_notifications: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserSettings":
        anonymous = row.get("anonymous_uploads")
        notifications = row.get("email_notifications")
        return cls(
            anonymous_uploads=False if anonymous is None else anonymous,
            full_name=row.get("full_name"),
            email_notifications=True if notifications is None else notifications,
        )


class UserSettingsUpdate(BaseModel):
    anonymous_uploads: Optional[bool] = None
    full_name: Optional[str] = None
    email_notifications: Optional[bool] = None


class AuthPrincipal(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class NoteStats(BaseModel):
    views: int = 0
    downloads: int = 0


class UserStats(BaseModel):
    total_notes: int = 0
    total_views: int = 0
    total_downloads: int = 0


class PlatformStats(BaseModel):
    total_notes: int = 0
    total_users: int = 0
    total_views: int = 0
    total_downloads: int = 0


class PreviewUrl(BaseModel):
    url: str
    expires_in: int
