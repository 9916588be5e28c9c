from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from skinscan.dependencies.current_user import get_current_user
from skinscan.dependencies.services import get_supabase_service, get_vision_client
from skinscan.pipeline.pipeline import analyze_scan
from skinscan.pipeline.validator import validate_analysis_request
from skinscan.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ScanListResponse,
    ScanRecord,
    ScanStats,
    UserIdentity,
)
from skinscan.services.supabase_service import SupabaseService
from skinscan.services.vision_client import UpstreamUnavailableError, VisionClient
from skinscan.utils.logging import get_logger

router = APIRouter(prefix="/api/scans", tags=["Scans"])
logger = get_logger("scans")


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    body: Optional[AnalyzeRequest] = None,
    authorization: Optional[str] = Header(None),
    supabase: SupabaseService = Depends(get_supabase_service),
    vision: VisionClient = Depends(get_vision_client),
):
    """
    Analyze a face photo.

    Every content outcome (completed, fallback, empty_response, parse_error)
    is a 200 with a full report; `status` tells them apart. Only a failed
    model call is an error.
    """
    image = body.image if body is not None else None
    request = await validate_analysis_request(authorization, image, supabase)

    try:
        return await analyze_scan(request, vision, supabase)
    except UpstreamUnavailableError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Unexpected error in /api/scans/analyze")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=ScanListResponse)
async def list_scans(
    user: UserIdentity = Depends(get_current_user),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    """Scan history of the caller, newest first"""
    try:
        rows = await supabase.list_scans(user.id)
        scans = [ScanRecord.model_validate(row) for row in rows]
    except Exception as e:
        logger.error(f"Scans fetch failed for user={user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch scans: {e}")

    logger.info(f"Found {len(scans)} scans for user={user.id}")
    return ScanListResponse(scans=scans)


@router.get("/stats", response_model=ScanStats)
async def scan_stats(
    user: UserIdentity = Depends(get_current_user),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        rows = await supabase.list_scans(user.id)
    except Exception as e:
        logger.error(f"Stats fetch failed for user={user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch stats: {e}")

    stats = ScanStats(
        total_scans=len(rows),
        total_issues=sum(len(row.get("issues") or []) for row in rows),
        last_scan=rows[0].get("created_at") if rows else None,
    )
    logger.info(f"Stats for user={user.id}: {stats.model_dump()}")
    return stats
