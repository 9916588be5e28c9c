from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException

from skinscan.schemas import UserIdentity
from skinscan.utils.logging import get_logger

logger = get_logger("validator")

BEARER_PREFIX = "Bearer "
DATA_IMAGE_PREFIX = "data:image/"
DEFAULT_IMAGE_PREFIX = "data:image/jpeg;base64,"


@dataclass(frozen=True)
class ValidatedRequest:
    user: UserIdentity
    image_ref: str


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="No token provided")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="No token provided")
    return token


async def resolve_user(token: str, identity) -> UserIdentity:
    """`identity` is anything with an async ``get_user(token)``."""
    user = await identity.get_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user


def normalize_image_ref(image: str) -> str:
    """Data URLs pass through; bare base64 is wrapped as inline JPEG."""
    if image.startswith(DATA_IMAGE_PREFIX):
        return image
    return f"{DEFAULT_IMAGE_PREFIX}{image}"


async def validate_analysis_request(authorization: Optional[str], image: Optional[str], identity) -> ValidatedRequest:
    # Header check, then image, then the provider lookup
    token = extract_bearer_token(authorization)

    if not image or not image.strip():
        raise HTTPException(status_code=400, detail="Image is required")

    user = await resolve_user(token, identity)
    logger.info(f"Analysis request user={user.id} image_len={len(image)}")
    return ValidatedRequest(user=user, image_ref=normalize_image_ref(image.strip()))
