# stats.py
from fastapi import APIRouter, Depends

from supabase import Client

from ..analytics import get_platform_stats
from ..config import get_db
from ..schemas import PlatformStats
from ..session import get_current_principal
from .deps import result_or_raise

router = APIRouter(tags=["stats"], dependencies=[Depends(get_current_principal)])


@router.get("/stats", response_model=PlatformStats)
def platform_stats(db: Client = Depends(get_db)):
    return result_or_raise(get_platform_stats(db))
