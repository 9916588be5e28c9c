from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from skinscan.dependencies.current_user import require_admin
from skinscan.dependencies.services import get_supabase_service
from skinscan.schemas import AdminStats, RoleUpdate, UserIdentity
from skinscan.services.supabase_service import SupabaseService
from skinscan.utils.logging import get_logger

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = get_logger("admin")

ROLES = {"user", "admin"}


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def count_since(rows: List[Dict[str, Any]], since: datetime) -> int:
    count = 0
    for row in rows:
        ts = _parse_timestamp(row.get("created_at"))
        if ts is not None and ts >= since:
            count += 1
    return count


def _start_of_today() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


@router.get("/stats", response_model=AdminStats)
async def admin_stats(
    _: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        profiles = await supabase.list_profiles()
        scans = await supabase.list_all_scans()
    except Exception as e:
        logger.exception("Admin stats error")
        raise HTTPException(status_code=500, detail=f"Failed to fetch stats: {e}")

    today = _start_of_today()
    total_users = len(profiles)
    total_scans = len(scans)
    return AdminStats(
        total_users=total_users,
        total_scans=total_scans,
        total_issues=sum(len(scan.get("issues") or []) for scan in scans),
        users_today=count_since(profiles, today),
        scans_today=count_since(scans, today),
        avg_scans_per_user=round(total_scans / total_users, 1) if total_users else 0,
    )


@router.get("/users")
async def admin_users(
    _: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        profiles = await supabase.list_profiles()
        users = []
        for profile in profiles:
            users.append({**profile, "scanCount": await supabase.count_user_scans(profile["id"])})
    except Exception as e:
        logger.exception("Admin users error")
        raise HTTPException(status_code=500, detail=f"Failed to fetch users: {e}")
    return {"users": users}


@router.get("/scans")
async def admin_scans(
    _: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        scans = await supabase.list_all_scans()
        emails: Dict[str, str] = {}
        result = []
        for scan in scans:
            user_id = scan.get("user_id")
            if user_id not in emails:
                profile = await supabase.get_profile(user_id) if user_id else None
                emails[user_id] = (profile or {}).get("email") or "Unknown"
            result.append({**scan, "userEmail": emails[user_id]})
    except Exception as e:
        logger.exception("Admin scans error")
        raise HTTPException(status_code=500, detail=f"Failed to fetch scans: {e}")
    return {"scans": result}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    try:
        await supabase.delete_user_scans(user_id)
    except Exception as e:
        logger.error(f"Error deleting scans of user={user_id}: {e}")

    try:
        await supabase.delete_profile(user_id)
    except Exception as e:
        logger.exception("Admin delete user error")
        raise HTTPException(status_code=500, detail=f"Failed to delete user: {e}")

    logger.info(f"Admin {admin.id} deleted user={user_id}")
    return {"success": True, "message": "User deleted successfully"}


@router.delete("/scans/{scan_id}")
async def delete_scan(
    scan_id: str,
    admin: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        await supabase.delete_scan(scan_id)
    except Exception as e:
        logger.exception("Admin delete scan error")
        raise HTTPException(status_code=500, detail=f"Failed to delete scan: {e}")

    logger.info(f"Admin {admin.id} deleted scan={scan_id}")
    return {"success": True, "message": "Scan deleted successfully"}


@router.put("/users/{user_id}/role")
async def update_role(
    user_id: str,
    data: RoleUpdate,
    admin: UserIdentity = Depends(require_admin),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    if data.role not in ROLES:
        raise HTTPException(status_code=400, detail='Invalid role. Must be "user" or "admin"')
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot change your own role")

    try:
        updated = await supabase.update_role(user_id, data.role)
    except Exception as e:
        logger.exception("Admin update role error")
        raise HTTPException(status_code=500, detail=f"Failed to update role: {e}")

    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")

    return {"success": True, "message": "Role updated successfully", "user": updated}
