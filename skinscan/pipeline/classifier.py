from __future__ import annotations
from typing import Iterable, Optional

from skinscan.config import settings
from skinscan.pipeline.normalizer import PayloadDecodeError, decode_text
from skinscan.schemas import OutcomeState, RawModelReply
from skinscan.utils.logging import get_logger

logger = get_logger("classifier")

CONTENT_FILTER = "content_filter"


def matched_refusal_marker(text: Optional[str], markers: Iterable[str]) -> Optional[str]:
    if not text:
        return None
    lower = text.lower()
    for marker in markers:
        if marker in lower:
            return marker
    return None


def classify(reply: RawModelReply, markers: Iterable[str] | None = None) -> OutcomeState:
    """
    Assign exactly one outcome state to a model reply.

    Refusal checks run before any parse attempt: a refusal is rarely valid
    JSON and must not be reported as a parse error.
    """
    markers = settings.refusal_markers if markers is None else markers

    if reply.finish_reason == CONTENT_FILTER:
        logger.info("Model reply refused: content_filter")
        return OutcomeState.fallback

    if reply.refusal and reply.refusal.strip():
        logger.info(f"Model reply refused: refusal field {reply.refusal[:200]!r}")
        return OutcomeState.fallback

    marker = matched_refusal_marker(reply.content, markers)
    if marker is not None:
        logger.info(f"Model reply refused: text marker {marker!r}")
        return OutcomeState.fallback

    if not reply.content or not reply.content.strip():
        logger.info("Model reply empty")
        return OutcomeState.empty_response

    try:
        decode_text(reply.content)
    except PayloadDecodeError as e:
        logger.warning(f"Model reply failed to parse: {e}")
        return OutcomeState.parse_error

    return OutcomeState.completed
