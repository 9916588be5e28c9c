from __future__ import annotations
from typing import Optional

from skinscan.schemas import CanonicalReport, OutcomeState
from skinscan.utils.logging import get_logger

logger = get_logger("persistence")


async def persist(store, user_id: str, report: CanonicalReport, state: OutcomeState) -> Optional[str]:
    """
    Write a scan row for a completed analysis and return its id.

    Safe-default reports are never stored. A storage failure is logged and
    reported as ``None`` so the caller still gets the computed report.
    """
    if state != OutcomeState.completed:
        logger.info(f"Skipping scan save for user={user_id} status={state.value}")
        return None

    issues = [issue.model_dump() for issue in report.issues]
    try:
        scan_id = await store.insert_scan(user_id, issues, list(report.recommendations))
    except Exception:
        logger.exception(f"Failed to save scan for user={user_id}")
        return None

    logger.info(f"Scan saved id={scan_id} user={user_id}")
    return scan_id
