from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from skinscan.dependencies.services import get_supabase_service, get_vision_client
from skinscan.main import app
from skinscan.schemas import RawModelReply, UserIdentity
from skinscan.services.vision_client import UpstreamUnavailableError


USER = UserIdentity(id="user-1", email="user@example.com")
ADMIN = UserIdentity(id="admin-1", email="admin@example.com")

ROUTINE_BODY = {
    "concerns": [{"name": "shine", "area": "forehead", "description": "d", "confidence": 0.4}],
    "routine": {"morning": ["cleanser"], "evening": ["moisturizer"]},
    "ingredientsToConsider": ["niacinamide"],
}


class FakeSupabase:
    """In-memory stand-in for SupabaseService."""

    def __init__(self) -> None:
        self.tokens: Dict[str, UserIdentity] = {"user-token": USER, "admin-token": ADMIN}
        self.profiles: Dict[str, Dict[str, Any]] = {
            ADMIN.id: {"id": ADMIN.id, "email": ADMIN.email, "role": "admin", "created_at": "2024-01-01T00:00:00+00:00"},
        }
        self.scans: List[Dict[str, Any]] = []
        self.insert_calls: List[Dict[str, Any]] = []
        self.fail_insert = False
        self.fail_list = False
        self.fail_profiles = False

    async def get_user(self, token: str) -> Optional[UserIdentity]:
        return self.tokens.get(token)

    async def sign_up(self, email: str, password: str) -> Optional[UserIdentity]:
        if email == "taken@example.com":
            raise RuntimeError("User already registered")
        return UserIdentity(id="new-user", email=email)

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        if password != "secret123":
            raise RuntimeError("Invalid login credentials")
        return {"user": USER, "session": {"access_token": "user-token", "refresh_token": "r"}}

    async def sign_out(self) -> None:
        return None

    async def insert_scan(self, user_id: str, issues: List[Dict[str, Any]], recommendations: List[str]) -> str:
        self.insert_calls.append({"user_id": user_id, "issues": issues, "recommendations": recommendations})
        if self.fail_insert:
            raise RuntimeError("database unavailable")
        scan_id = f"scan-{len(self.scans) + 1}"
        self.scans.insert(0, {
            "id": scan_id,
            "user_id": user_id,
            "issues": issues,
            "recommendations": recommendations,
            "created_at": f"2024-05-0{len(self.scans) + 1}T10:00:00+00:00",
        })
        return scan_id

    async def list_scans(self, user_id: str) -> List[Dict[str, Any]]:
        if self.fail_list:
            raise RuntimeError("database unavailable")
        return [s for s in self.scans if s["user_id"] == user_id]

    async def list_all_scans(self) -> List[Dict[str, Any]]:
        return list(self.scans)

    async def count_user_scans(self, user_id: str) -> int:
        return len([s for s in self.scans if s["user_id"] == user_id])

    async def delete_scan(self, scan_id: str) -> None:
        self.scans = [s for s in self.scans if s["id"] != scan_id]

    async def delete_user_scans(self, user_id: str) -> None:
        self.scans = [s for s in self.scans if s["user_id"] != user_id]

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        if self.fail_profiles:
            raise RuntimeError("database unavailable")
        return self.profiles.get(user_id)

    async def create_profile(self, user_id: str, email: Optional[str], role: str) -> Dict[str, Any]:
        row = {"id": user_id, "email": email, "role": role, "created_at": "2024-05-01T00:00:00+00:00"}
        self.profiles[user_id] = row
        return row

    async def list_profiles(self) -> List[Dict[str, Any]]:
        return list(self.profiles.values())

    async def update_role(self, user_id: str, role: str) -> Optional[Dict[str, Any]]:
        if user_id not in self.profiles:
            return None
        self.profiles[user_id]["role"] = role
        return self.profiles[user_id]

    async def delete_profile(self, user_id: str) -> None:
        self.profiles.pop(user_id, None)

    async def ping(self) -> List[Dict[str, Any]]:
        return [{"id": ADMIN.id}]


class FakeVision:
    def __init__(self, reply: RawModelReply | None = None, error: Exception | None = None) -> None:
        self.reply = reply or RawModelReply(content=json.dumps(ROUTINE_BODY), finish_reason="stop")
        self.error = error
        self.image_refs: List[str] = []

    async def complete_vision(self, image_ref: str, *args: Any, **kwargs: Any) -> RawModelReply:
        self.image_refs.append(image_ref)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def vision() -> FakeVision:
    return FakeVision()


@pytest.fixture
def client(store: FakeSupabase, vision: FakeVision):
    app.dependency_overrides[get_supabase_service] = lambda: store
    app.dependency_overrides[get_vision_client] = lambda: vision
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def upstream_down() -> UpstreamUnavailableError:
    return UpstreamUnavailableError("AI service temporarily unavailable")


def auth(token: str = "user-token") -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
