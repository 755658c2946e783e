"""Tests for path parsing and request classification."""

import pytest

from n9ml.core.errors import InvalidPathError
from n9ml.core.intent import (
    DEFAULT_REQUEST_INTENT,
    CognitiveIntent,
    Precision,
    classify_request,
    parse_path,
)


# ── Path parsing ─────────────────────────────────────────────────────────────


def test_parse_vision_realtime():
    intent = parse_path("/models/vision/realtime")

    assert intent.domain == "vision"
    assert intent.task == "realtime"
    assert intent.realtime is True
    assert intent.precision == Precision.MEDIUM
    assert intent.complexity == 6


def test_parse_nlp_precise():
    intent = parse_path("/inference/nlp/precise")

    assert intent.domain == "nlp"
    assert intent.task == "precise"
    assert intent.precision == Precision.HIGH
    assert intent.realtime is False
    assert intent.complexity == 10


def test_parse_low_precision_modifier():
    intent = parse_path("/models/vision/fast/low")

    assert intent.domain == "vision"
    assert intent.task == "fast"
    assert intent.precision == Precision.LOW
    assert intent.realtime is False


def test_invalid_path_raises():
    with pytest.raises(InvalidPathError, match="at least domain and task"):
        parse_path("/invalid")


def test_empty_segments_ignored():
    intent = parse_path("//nlp///summarize//")
    assert intent.domain == "nlp"
    assert intent.task == "summarize"


@pytest.mark.parametrize("path", ["", "/", "///", "models"])
def test_too_few_segments(path):
    with pytest.raises(InvalidPathError):
        parse_path(path)


def test_invalid_path_is_value_error():
    with pytest.raises(ValueError):
        parse_path("/one")


# ── Additional tests ────────────────────────────────────────────────────────


def test_prefix_kept_with_two_segments():
    """A namespace word is only a prefix when domain and task follow it."""
    intent = parse_path("/models/vision")
    assert intent.domain == "models"
    assert intent.task == "vision"


def test_unknown_prefix_is_domain():
    intent = parse_path("/research/multimodal/generation")
    assert intent.domain == "research"
    assert intent.task == "multimodal"
    # generation is only a modifier here
    assert intent.complexity == 5


def test_generation_task_adds_complexity():
    intent = parse_path("/multimodal/generation/precise")
    assert intent.precision == Precision.HIGH
    assert intent.complexity == 9


def test_live_modifier_is_realtime():
    assert parse_path("/audio/stream/live").realtime is True
    assert parse_path("/audio/livestream").realtime is True


def test_high_beats_low():
    intent = parse_path("/audio/fast/high")
    assert intent.precision == Precision.HIGH


@pytest.mark.parametrize("path,complexity", [
    ("/nlp/workflow", 8),
    ("/vision/highway", 7),
    ("/audio/slowdown", 5),
])
def test_short_keywords_not_matched_inside_task(path, complexity):
    """high/low only count as whole segments."""
    intent = parse_path(path)
    assert intent.precision == Precision.MEDIUM
    assert intent.complexity == complexity


def test_short_keywords_as_whole_task():
    assert parse_path("/audio/high").precision == Precision.HIGH
    assert parse_path("/audio/low").precision == Precision.LOW


def test_long_keywords_matched_inside_task():
    assert parse_path("/nlp/imprecise").precision == Precision.HIGH
    assert parse_path("/nlp/fastpath").precision == Precision.LOW


def test_complexity_clamped_high():
    intent = parse_path("/nlp/generation/precise")
    assert intent.complexity == 10


@pytest.mark.parametrize("path", [
    "/models/vision/realtime",
    "/inference/nlp/precise/high",
    "/streaming/audio/fast/low",
    "/research/multimodal/generation",
    "/nlp/generation/precise/live",
    "/vision/realtime/fast",
    "/a/b",
])
def test_complexity_always_in_range(path):
    assert 1 <= parse_path(path).complexity <= 10


def test_intent_is_immutable():
    intent = parse_path("/nlp/chat")
    with pytest.raises(Exception):
        intent.domain = "vision"


# ── Request classification ──────────────────────────────────────────────────


def test_classify_analysis():
    intent = classify_request("Help me understand JavaScript closures")

    assert intent.task == "analysis"
    assert intent.precision == Precision.HIGH
    assert intent.domain == "general"
    assert intent.complexity == 6


def test_classify_creation():
    intent = classify_request("Build a React dashboard")

    assert intent.task == "creation"
    assert intent.domain == "general"
    assert intent.complexity == 7


def test_classify_development():
    intent = classify_request("Build a website")

    assert intent.task == "creation"
    assert intent.domain == "development"
    assert intent.complexity == 9


def test_classify_ai_not_clamped():
    intent = classify_request(
        "Create a full-stack e-commerce application with AI recommendations"
    )

    assert intent.domain == "ai"
    assert intent.task == "creation"
    assert intent.complexity == 12


def test_classify_plain_text():
    intent = classify_request("hello there")
    assert intent == CognitiveIntent("general", "respond", Precision.MEDIUM, False, 5)


@pytest.mark.parametrize("text", [None, "", "   ", 42, ["build"], "x" * 10_000])
def test_classify_malformed_falls_back(text):
    assert classify_request(text) == DEFAULT_REQUEST_INTENT


def test_default_intent_is_low_complexity():
    assert DEFAULT_REQUEST_INTENT.complexity == 1
    assert DEFAULT_REQUEST_INTENT.task == "respond"


def test_classify_respects_max_chars():
    text = "build " * 10
    assert classify_request(text, max_chars=10) == DEFAULT_REQUEST_INTENT
    assert classify_request(text, max_chars=100).task == "creation"
