import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    notes_bucket: str = "lecture-notes"
    signed_url_ttl: int = 3600
    max_upload_bytes: int = 10 * 1024 * 1024
    recent_notes_limit: int = 10
    allow_non_atomic_counters: bool = False
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings(
        supabase_url=os.environ.get("SUPABASE_URL", ""),
        supabase_key=os.environ.get("SUPABASE_KEY", ""),
        notes_bucket=os.environ.get("NOTES_BUCKET", "lecture-notes"),
        signed_url_ttl=int(os.environ.get("SIGNED_URL_TTL", 3600)),
        max_upload_bytes=int(os.environ.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
        recent_notes_limit=int(os.environ.get("RECENT_NOTES_LIMIT", 10)),
        allow_non_atomic_counters=_env_flag("ALLOW_NON_ATOMIC_COUNTERS"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


def get_db() -> Client:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_KEY environment variables must be set"
        )
    return create_client(settings.supabase_url, settings.supabase_key)
