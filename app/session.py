import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from supabase import Client

from .config import get_db
from .crud import create_profile, get_profile
from .errors import DatabaseResult, NotFound
from .schemas import (
    ANONYMOUS_UPLOADER,
    AuthPrincipal,
    Profile,
    ProfileCreate,
    UserSettings,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """The authenticated principal together with its profile."""

    principal: AuthPrincipal
    profile: Profile

    @property
    def user_id(self) -> str:
        return self.principal.id

    @property
    def settings(self) -> UserSettings:
        return UserSettings(
            anonymous_uploads=self.profile.anonymous_uploads,
            full_name=self.profile.full_name,
            email_notifications=self.profile.email_notifications,
        )


def principal_from_token(db: Client, token: str) -> Optional[AuthPrincipal]:
    """Resolve a Supabase access token into the principal it belongs to."""
    try:
        user_response = db.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        return None
    if not user_response or not getattr(user_response, "user", None):
        return None

    user = user_response.user
    return AuthPrincipal(
        id=str(user.id),
        email=user.email,
        user_metadata=dict(user.user_metadata or {}),
    )


def display_name_from_metadata(principal: AuthPrincipal) -> Optional[str]:
    metadata = principal.user_metadata
    return metadata.get("full_name") or metadata.get("name") or None


def ensure_profile(db: Client, principal: AuthPrincipal) -> DatabaseResult[Profile]:
    """Return the principal's profile, creating it on first sign-in."""
    existing = get_profile(db, principal.id)
    if existing.ok or not isinstance(existing.error, NotFound):
        return existing

    logger.info(f"Creating profile for first sign-in of user {principal.id}")
    return create_profile(
        db,
        ProfileCreate(
            id=principal.id,
            email=principal.email or "",
            full_name=display_name_from_metadata(principal),
            anonymous_uploads=False,
            email_notifications=True,
        ),
    )


def resolve_uploader_name(
    principal: AuthPrincipal,
    profile: Optional[Profile] = None,
    anonymous: bool = False,
) -> str:
    """The name stamped on a note at upload time."""
    if anonymous:
        return ANONYMOUS_UPLOADER
    return (
        (profile.full_name if profile else None)
        or display_name_from_metadata(principal)
        or principal.email
        or "Unknown"
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_principal(
    authorization: Optional[str] = Header(default=None),
    db: Client = Depends(get_db),
) -> AuthPrincipal:
    token = _bearer_token(authorization)
    principal = principal_from_token(db, token) if token else None
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def get_session(
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Client = Depends(get_db),
) -> Session:
    result = ensure_profile(db, principal)
    if not result.ok:
        raise HTTPException(status_code=result.error.status_code, detail=result.error.message)
    return Session(principal=principal, profile=result.data)
