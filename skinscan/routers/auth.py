from fastapi import APIRouter, Depends, HTTPException

from skinscan.config import settings
from skinscan.dependencies.current_user import get_current_user
from skinscan.dependencies.services import get_supabase_service
from skinscan.schemas import Credentials, ProfileResponse, UserIdentity
from skinscan.services.supabase_service import SupabaseService
from skinscan.utils.logging import get_logger

router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = get_logger("auth")

MIN_PASSWORD_LENGTH = 6


@router.post("/register", status_code=201)
async def register(data: Credentials, supabase: SupabaseService = Depends(get_supabase_service)):
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user = await supabase.sign_up(data.email, data.password)
    except Exception as e:
        logger.warning(f"Registration failed for {data.email}: {e}")
        raise HTTPException(status_code=400, detail=f"Registration failed: {e}")

    return {"message": "Registration successful", "user": user}


@router.post("/login")
async def login(data: Credentials, supabase: SupabaseService = Depends(get_supabase_service)):
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        result = await supabase.sign_in(data.email, data.password)
    except Exception as e:
        logger.info(f"Login failed for {data.email}: {e}")
        raise HTTPException(status_code=401, detail=f"Login failed: {e}")

    return {"message": "Login successful", **result}


@router.post("/logout")
async def logout(supabase: SupabaseService = Depends(get_supabase_service)):
    try:
        await supabase.sign_out()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Logout failed: {e}")
    return {"message": "Logout successful"}


@router.get("/me")
async def me(user: UserIdentity = Depends(get_current_user)):
    return {"user": user}


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    user: UserIdentity = Depends(get_current_user),
    supabase: SupabaseService = Depends(get_supabase_service),
):
    """
    Profile with role of the caller.

    A missing profile is created on first lookup. Storage errors degrade to
    a plain ``user`` role instead of failing the request.
    """
    try:
        existing = await supabase.get_profile(user.id)
    except Exception as e:
        logger.error(f"Profile fetch failed for user={user.id}: {e}")
        return ProfileResponse(id=user.id, email=user.email, role="user")

    if existing is None:
        logger.info(f"Profile not found, creating one for user={user.id}")
        try:
            existing = await supabase.create_profile(user.id, user.email, settings.default_profile_role)
        except Exception as e:
            logger.error(f"Profile create failed for user={user.id}: {e}")
            return ProfileResponse(id=user.id, email=user.email, role="user")

    return ProfileResponse(
        id=str(existing.get("id", user.id)),
        email=existing.get("email", user.email),
        role=existing.get("role") or "user",
        created_at=existing.get("created_at"),
    )
