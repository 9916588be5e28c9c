from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time

from skinscan.pipeline.classifier import classify
from skinscan.pipeline.normalizer import PayloadDecodeError, decode_text, normalize, safe_default_payload
from skinscan.pipeline.persistence import persist
from skinscan.pipeline.validator import ValidatedRequest
from skinscan.schemas import AnalyzeResponse, CanonicalReport, OutcomeState, RawModelReply
from skinscan.utils.logging import get_logger

logger = get_logger("pipeline")


@dataclass
class ReplyOutcome:
    state: OutcomeState
    report: CanonicalReport
    raw_analysis: Dict[str, Any] = field(default_factory=dict)


def interpret_reply(reply: RawModelReply) -> ReplyOutcome:
    """Classify and normalize one model reply. Never raises on reply content."""
    state = classify(reply)
    raw_analysis: Optional[Dict[str, Any]] = None

    if state == OutcomeState.completed:
        try:
            raw_analysis, _ = decode_text(reply.content)
        except PayloadDecodeError:
            # classify already decoded this text once
            state = OutcomeState.parse_error

    report = normalize(reply.content, state)
    if raw_analysis is None:
        raw_analysis = safe_default_payload()
    return ReplyOutcome(state=state, report=report, raw_analysis=raw_analysis)


async def analyze_scan(request: ValidatedRequest, vision, store) -> AnalyzeResponse:
    """
    Run one analysis end to end: model call, classification, normalization
    and the persistence gate.

    UpstreamUnavailableError from the vision client propagates to the caller.
    """
    timings: Dict[str, float] = {}

    start_time = time.perf_counter()
    reply = await vision.complete_vision(request.image_ref)
    timings["vision_seconds"] = round(time.perf_counter() - start_time, 2)
    logger.info(f"[TIMING] Vision call took {timings['vision_seconds']} seconds")

    outcome = interpret_reply(reply)
    logger.info(
        f"Analysis status={outcome.state.value} issues={len(outcome.report.issues)} "
        f"recommendations={len(outcome.report.recommendations)}"
    )

    start_time = time.perf_counter()
    scan_id = await persist(store, request.user.id, outcome.report, outcome.state)
    timings["persist_seconds"] = round(time.perf_counter() - start_time, 2)
    logger.info(f"[TIMING] Persistence took {timings['persist_seconds']} seconds")

    return AnalyzeResponse(
        success=True,
        analysis=outcome.report,
        raw_analysis=outcome.raw_analysis,
        scan_id=scan_id,
        status=outcome.state,
        timings=timings,
    )
