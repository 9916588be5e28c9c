from __future__ import annotations

import pytest
from fastapi import HTTPException

from skinscan.pipeline.validator import (
    extract_bearer_token,
    normalize_image_ref,
    validate_analysis_request,
)

from conftest import USER, FakeSupabase


@pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Bearer ", "Bearer    "])
def test_missing_or_malformed_header_is_unauthorized(header) -> None:
    with pytest.raises(HTTPException) as exc:
        extract_bearer_token(header)
    assert exc.value.status_code == 401
    assert exc.value.detail == "No token provided"


def test_bearer_token_extracted() -> None:
    assert extract_bearer_token("Bearer abc.def") == "abc.def"


def test_data_url_passes_through() -> None:
    ref = "data:image/png;base64,iVBORw0KGgo="
    assert normalize_image_ref(ref) == ref


def test_bare_base64_is_wrapped_as_jpeg() -> None:
    assert normalize_image_ref("/9j/4AAQ") == "data:image/jpeg;base64,/9j/4AAQ"


@pytest.mark.asyncio
async def test_valid_request() -> None:
    result = await validate_analysis_request("Bearer user-token", "/9j/4AAQ", FakeSupabase())
    assert result.user == USER
    assert result.image_ref == "data:image/jpeg;base64,/9j/4AAQ"


@pytest.mark.asyncio
@pytest.mark.parametrize("image", [None, "", "   "])
async def test_missing_image_is_bad_request(image) -> None:
    with pytest.raises(HTTPException) as exc:
        await validate_analysis_request("Bearer user-token", image, FakeSupabase())
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_unknown_token_is_unauthorized() -> None:
    with pytest.raises(HTTPException) as exc:
        await validate_analysis_request("Bearer bogus", "/9j/4AAQ", FakeSupabase())
    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token"


@pytest.mark.asyncio
async def test_header_checked_before_image() -> None:
    with pytest.raises(HTTPException) as exc:
        await validate_analysis_request(None, None, FakeSupabase())
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_image_checked_before_token_lookup() -> None:
    class CountingIdentity:
        calls = 0

        async def get_user(self, token):
            CountingIdentity.calls += 1
            return USER

    with pytest.raises(HTTPException) as exc:
        await validate_analysis_request("Bearer user-token", "", CountingIdentity())
    assert exc.value.status_code == 400
    assert CountingIdentity.calls == 0
