# skinscan/services/supabase_service.py
from typing import Dict, Any, Optional, List

from supabase import create_client, Client

from skinscan.config import settings
from skinscan.schemas import UserIdentity
from skinscan.utils.logging import get_logger


logger = get_logger("supabase")

SCANS_TABLE = "scans"
PROFILES_TABLE = "profiles"


def _identity(user: Any) -> Optional[UserIdentity]:
    if user is None:
        return None
    return UserIdentity(id=str(user.id), email=getattr(user, "email", None))


class SupabaseService:
    """Identity and storage capabilities backed by one Supabase project."""

    def __init__(self, client: Client | None = None):
        if client is None:
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(settings.supabase_url, settings.supabase_key)
        self.client: Client = client

    # ==================== Identity ====================

    async def get_user(self, token: str) -> Optional[UserIdentity]:
        """Resolve a bearer token; None when the provider rejects it"""
        try:
            response = self.client.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            return None
        return _identity(getattr(response, "user", None))

    async def sign_up(self, email: str, password: str) -> Optional[UserIdentity]:
        response = self.client.auth.sign_up({"email": email, "password": password})
        return _identity(response.user)

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        session = response.session
        return {
            "user": _identity(response.user),
            "session": {
                "access_token": session.access_token,
                "refresh_token": session.refresh_token,
                "expires_in": session.expires_in,
                "token_type": session.token_type,
            } if session else None,
        }

    async def sign_out(self) -> None:
        self.client.auth.sign_out()

    # ==================== Scans ====================

    async def insert_scan(self, user_id: str, issues: List[Dict[str, Any]], recommendations: List[str]) -> str:
        """Insert one scan row and return its id"""
        response = self.client.table(SCANS_TABLE).insert({
            "user_id": user_id,
            "issues": issues,
            "recommendations": recommendations,
        }).execute()

        if not response.data:
            raise RuntimeError("Scan insert returned no row")
        return str(response.data[0]["id"])

    async def list_scans(self, user_id: str) -> List[Dict[str, Any]]:
        """Scans of one user, newest first"""
        response = self.client.table(SCANS_TABLE).select("*").eq(
            "user_id", user_id
        ).order("created_at", desc=True).execute()
        return response.data or []

    async def list_all_scans(self) -> List[Dict[str, Any]]:
        response = self.client.table(SCANS_TABLE).select("*").order("created_at", desc=True).execute()
        return response.data or []

    async def count_user_scans(self, user_id: str) -> int:
        response = self.client.table(SCANS_TABLE).select("id").eq("user_id", user_id).execute()
        return len(response.data or [])

    async def delete_scan(self, scan_id: str) -> None:
        self.client.table(SCANS_TABLE).delete().eq("id", scan_id).execute()

    async def delete_user_scans(self, user_id: str) -> None:
        self.client.table(SCANS_TABLE).delete().eq("user_id", user_id).execute()

    # ==================== Profiles ====================

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.table(PROFILES_TABLE).select("*").eq("id", user_id).execute()
        return response.data[0] if response.data else None

    async def create_profile(self, user_id: str, email: Optional[str], role: str) -> Dict[str, Any]:
        response = self.client.table(PROFILES_TABLE).insert({
            "id": user_id,
            "email": email,
            "role": role,
        }).execute()
        if not response.data:
            raise RuntimeError("Profile insert returned no row")
        return response.data[0]

    async def list_profiles(self) -> List[Dict[str, Any]]:
        response = self.client.table(PROFILES_TABLE).select("*").order("created_at", desc=True).execute()
        return response.data or []

    async def update_role(self, user_id: str, role: str) -> Optional[Dict[str, Any]]:
        response = self.client.table(PROFILES_TABLE).update({"role": role}).eq("id", user_id).execute()
        return response.data[0] if response.data else None

    async def delete_profile(self, user_id: str) -> None:
        self.client.table(PROFILES_TABLE).delete().eq("id", user_id).execute()

    async def ping(self) -> List[Dict[str, Any]]:
        """Cheap round-trip used by the db-test route"""
        response = self.client.table(PROFILES_TABLE).select("id").limit(1).execute()
        return response.data or []
