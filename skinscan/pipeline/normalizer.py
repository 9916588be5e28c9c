"""
Turn model reply text into a CanonicalReport.

Two historical payload shapes are accepted and decoded as separate variants:

* flat: ``issues`` / ``recommendations`` already in report form
* routine: any of ``concerns``, ``routine.morning`` / ``routine.evening``,
  ``ingredientsToConsider``, ``avoidIfSensitive``, ``overallSummary``;
  routine steps and ingredients are flattened into labelled recommendations

Anything else is a decode failure, which callers treat as ``parse_error``.
"""
from __future__ import annotations
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from skinscan.schemas import CanonicalReport, Issue, OutcomeState, Routine
from skinscan.utils.logging import get_logger

logger = get_logger("normalizer")

SEVERITIES = {"mild", "moderate", "severe"}
SKIN_TYPES = {"oily", "dry", "combination", "normal", "unknown"}

MORNING_LABEL = "Morning: "
EVENING_LABEL = "Evening: "
CONSIDER_LABEL = "Consider: "


class PayloadDecodeError(ValueError):
    pass


def _clamp_confidence(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return min(1.0, max(0.0, float(value)))


# Shape variants

class ShapeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # null means "not given", so field defaults apply
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class RoutineIn(ShapeModel):
    morning: List[str] = Field(default_factory=list)
    evening: List[str] = Field(default_factory=list)

    def to_routine(self) -> Routine:
        return Routine(morning=list(self.morning), evening=list(self.evening))


class FlatIssue(ShapeModel):
    name: str
    severity: str = "mild"
    location: str = ""
    description: str = ""
    confidence: Optional[float] = None

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_confidence(v)


class FlatPayload(ShapeModel):
    issues: List[FlatIssue]
    recommendations: List[str] = Field(default_factory=list)
    overall_assessment: str = Field("", alias="overallAssessment")
    skin_type: str = Field("unknown", alias="skinType")
    routine: RoutineIn = Field(default_factory=RoutineIn)
    ingredients_to_consider: List[str] = Field(default_factory=list, alias="ingredientsToConsider")
    avoid_if_sensitive: List[str] = Field(default_factory=list, alias="avoidIfSensitive")


class Concern(ShapeModel):
    name: str = ""
    area: str = ""
    description: str = ""
    confidence: Optional[float] = None

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: Optional[float]) -> Optional[float]:
        return _clamp_confidence(v)


class RoutinePayload(ShapeModel):
    concerns: List[Concern] = Field(default_factory=list)
    routine: RoutineIn = Field(default_factory=RoutineIn)
    ingredients_to_consider: List[str] = Field(default_factory=list, alias="ingredientsToConsider")
    avoid_if_sensitive: List[str] = Field(default_factory=list, alias="avoidIfSensitive")
    overall_summary: str = Field("", alias="overallSummary")
    skin_type: str = Field("unknown", alias="skinType")


Payload = Union[FlatPayload, RoutinePayload]


# JSON extraction

def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` span in ``text``, or None.

    Braces inside JSON string literals (including escaped quotes) do not
    count towards nesting, so prose or code fences around the object are
    ignored and nested objects are kept whole.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def load_json_object(text: Optional[str]) -> Dict[str, Any]:
    span = extract_json_object(text or "")
    if span is None:
        raise PayloadDecodeError("no JSON object found")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise PayloadDecodeError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PayloadDecodeError("JSON payload is not an object")
    return data


ROUTINE_KEYS = ("concerns", "routine", "ingredientsToConsider", "avoidIfSensitive", "overallSummary")


def decode_payload(data: Dict[str, Any]) -> Payload:
    """Flat shape first, then routine shape, then failure."""
    errors: List[str] = []

    if data.get("issues") is not None:
        try:
            return FlatPayload.model_validate(data)
        except ValidationError as e:
            errors.append(f"flat: {e.error_count()} errors")

    if any(key in data for key in ROUTINE_KEYS):
        try:
            return RoutinePayload.model_validate(data)
        except ValidationError as e:
            errors.append(f"routine: {e.error_count()} errors")

    if errors:
        raise PayloadDecodeError(f"payload matches no shape ({'; '.join(errors)})")
    raise PayloadDecodeError(f"unrecognised payload keys: {sorted(data)[:10]}")


def decode_text(text: Optional[str]) -> tuple[Dict[str, Any], Payload]:
    data = load_json_object(text)
    return data, decode_payload(data)


# Shape -> report

def _from_flat(payload: FlatPayload) -> CanonicalReport:
    return CanonicalReport(
        issues=[Issue(**issue.model_dump()) for issue in payload.issues],
        recommendations=list(payload.recommendations),
        overall_assessment=payload.overall_assessment,
        skin_type=payload.skin_type,
        routine=payload.routine.to_routine(),
        ingredients_to_consider=list(payload.ingredients_to_consider),
        avoid_if_sensitive=list(payload.avoid_if_sensitive),
    )


def _from_routine(payload: RoutinePayload) -> CanonicalReport:
    # This shape carries no severity
    issues = [
        Issue(
            name=c.name,
            severity="mild",
            location=c.area,
            description=c.description,
            confidence=c.confidence,
        )
        for c in payload.concerns
    ]
    recommendations = (
        [f"{MORNING_LABEL}{step}" for step in payload.routine.morning]
        + [f"{EVENING_LABEL}{step}" for step in payload.routine.evening]
        + [f"{CONSIDER_LABEL}{item}" for item in payload.ingredients_to_consider]
    )
    return CanonicalReport(
        issues=issues,
        recommendations=recommendations,
        overall_assessment=payload.overall_summary,
        skin_type=payload.skin_type,
        routine=payload.routine.to_routine(),
        ingredients_to_consider=list(payload.ingredients_to_consider),
        avoid_if_sensitive=list(payload.avoid_if_sensitive),
    )


def report_from_payload(payload: Payload) -> CanonicalReport:
    if isinstance(payload, FlatPayload):
        report = _from_flat(payload)
    else:
        report = _from_routine(payload)
    _warn_out_of_enum(report)
    return report


def _warn_out_of_enum(report: CanonicalReport) -> None:
    # Passed through as-is, only reported
    if report.skin_type not in SKIN_TYPES:
        logger.warning(f"skinType outside known values: {report.skin_type!r}")
    for issue in report.issues:
        if issue.severity not in SEVERITIES:
            logger.warning(f"Issue {issue.name!r} has severity outside known values: {issue.severity!r}")


# Safe default

SAFE_DEFAULT_PAYLOAD: Dict[str, Any] = {
    "concerns": [],
    "routine": {
        "morning": ["gentle cleanser", "moisturizer", "SPF 30+"],
        "evening": ["gentle cleanser", "moisturizer"],
    },
    "ingredientsToConsider": ["niacinamide", "ceramides", "hyaluronic acid"],
    "avoidIfSensitive": ["fragrance", "harsh scrubs", "alcohol"],
    "overallSummary": "Could not assess photo details reliably. Here is a safe basic routine.",
}

_SAFE_DEFAULT_REPORT = _from_routine(RoutinePayload.model_validate(SAFE_DEFAULT_PAYLOAD))


def safe_default_report() -> CanonicalReport:
    """A fresh copy of the fixed report used whenever analysis can't be trusted."""
    return _SAFE_DEFAULT_REPORT.model_copy(deep=True)


def safe_default_payload() -> Dict[str, Any]:
    return json.loads(json.dumps(SAFE_DEFAULT_PAYLOAD))


def normalize(raw_text: Optional[str], state: OutcomeState) -> CanonicalReport:
    if state != OutcomeState.completed:
        return safe_default_report()
    try:
        _, payload = decode_text(raw_text)
    except PayloadDecodeError as e:
        logger.warning(f"Completed reply failed to decode, using safe default: {e}")
        return safe_default_report()
    return report_from_payload(payload)
