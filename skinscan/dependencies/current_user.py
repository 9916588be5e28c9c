from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException

from skinscan.dependencies.services import get_supabase_service
from skinscan.pipeline.validator import extract_bearer_token, resolve_user
from skinscan.schemas import UserIdentity
from skinscan.services.supabase_service import SupabaseService
from skinscan.utils.logging import get_logger

logger = get_logger("auth")


async def get_current_user(
    authorization: Optional[str] = Header(None),
    supabase: SupabaseService = Depends(get_supabase_service),
) -> UserIdentity:
    token = extract_bearer_token(authorization)
    return await resolve_user(token, supabase)


async def require_admin(
    user: UserIdentity = Depends(get_current_user),
    supabase: SupabaseService = Depends(get_supabase_service),
) -> UserIdentity:
    try:
        profile: Optional[Dict[str, Any]] = await supabase.get_profile(user.id)
    except Exception as e:
        logger.warning(f"Admin check profile lookup failed for user={user.id}: {e}")
        profile = None

    if not profile:
        raise HTTPException(status_code=403, detail="Profile not found")
    if profile.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
