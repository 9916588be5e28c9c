from functools import lru_cache

from skinscan.services.supabase_service import SupabaseService
from skinscan.services.vision_client import VisionClient


@lru_cache
def get_supabase_service() -> SupabaseService:
    return SupabaseService()


@lru_cache
def get_vision_client() -> VisionClient:
    return VisionClient()
