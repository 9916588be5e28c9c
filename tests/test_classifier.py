from __future__ import annotations

import json

import pytest

from skinscan.config import DEFAULT_REFUSAL_MARKERS
from skinscan.pipeline.classifier import classify, matched_refusal_marker
from skinscan.schemas import OutcomeState, RawModelReply

from conftest import ROUTINE_BODY


VALID_JSON = json.dumps(ROUTINE_BODY)


@pytest.mark.parametrize("content", [VALID_JSON, "", None, "not json"])
def test_content_filter_is_fallback_regardless_of_content(content) -> None:
    reply = RawModelReply(content=content, finish_reason="content_filter")
    assert classify(reply) == OutcomeState.fallback


def test_refusal_field_wins_over_valid_json() -> None:
    reply = RawModelReply(content=VALID_JSON, refusal="I can't help with that.", finish_reason="stop")
    assert classify(reply) == OutcomeState.fallback


def test_blank_refusal_field_is_ignored() -> None:
    reply = RawModelReply(content=VALID_JSON, refusal="   ", finish_reason="stop")
    assert classify(reply) == OutcomeState.completed


@pytest.mark.parametrize("marker", DEFAULT_REFUSAL_MARKERS)
def test_every_default_marker_triggers_fallback(marker: str) -> None:
    reply = RawModelReply(content=f"Well... {marker.upper()} with this photo.", finish_reason="stop")
    assert classify(reply) == OutcomeState.fallback


def test_marker_inside_json_still_counts_as_refusal() -> None:
    body = dict(ROUTINE_BODY, overallSummary="Sorry, the lighting is poor.")
    reply = RawModelReply(content=json.dumps(body), finish_reason="stop")
    assert classify(reply) == OutcomeState.fallback


@pytest.mark.parametrize("content", [None, "", "   \n"])
def test_empty_content_is_empty_response(content) -> None:
    reply = RawModelReply(content=content, finish_reason="stop")
    assert classify(reply) == OutcomeState.empty_response


def test_no_fields_at_all_is_empty_response() -> None:
    assert classify(RawModelReply()) == OutcomeState.empty_response


def test_unparseable_content_is_parse_error() -> None:
    reply = RawModelReply(content="not json", finish_reason="stop")
    assert classify(reply) == OutcomeState.parse_error


def test_object_of_unknown_shape_is_parse_error() -> None:
    reply = RawModelReply(content='{"verdict": "fine"}', finish_reason="stop")
    assert classify(reply) == OutcomeState.parse_error


def test_truncated_json_is_parse_error() -> None:
    reply = RawModelReply(content=VALID_JSON[:-5], finish_reason="length")
    assert classify(reply) == OutcomeState.parse_error


def test_valid_routine_payload_is_completed() -> None:
    reply = RawModelReply(content=VALID_JSON, finish_reason="stop")
    assert classify(reply) == OutcomeState.completed


def test_custom_markers_replace_defaults() -> None:
    body = dict(ROUTINE_BODY, overallSummary="Sorry for the wait.")
    reply = RawModelReply(content=json.dumps(body), finish_reason="stop")
    assert classify(reply, markers=("policy violation",)) == OutcomeState.completed

    blocked = RawModelReply(content="Policy violation detected", finish_reason="stop")
    assert classify(blocked, markers=("policy violation",)) == OutcomeState.fallback


def test_matched_marker_returns_first_in_order() -> None:
    assert matched_refusal_marker("I'm unable to do that, sorry", DEFAULT_REFUSAL_MARKERS) == "i'm unable"
    assert matched_refusal_marker("all good", DEFAULT_REFUSAL_MARKERS) is None
    assert matched_refusal_marker(None, DEFAULT_REFUSAL_MARKERS) is None
