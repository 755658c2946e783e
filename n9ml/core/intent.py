# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: COGNITIVE INTENT
# ═══════════════════════════════════════════════════════════════════════════════

"""
Two ways of turning text into a CognitiveIntent.

parse_path() reads a Plan 9 style namespace path such as
/models/vision/realtime. The segment layout carries the meaning: an optional
namespace prefix, then domain, then task, then free modifiers.

classify_request() reads free text from a user and applies a much looser
keyword heuristic. It never raises; anything it cannot make sense of becomes
the default low-complexity request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from n9ml.core.errors import InvalidPathError

logger = logging.getLogger(__name__)


class Precision(Enum):
    """Desired numeric precision of an intent."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class CognitiveIntent:
    """Structured (domain, task, precision, realtime, complexity) tuple."""
    domain: str
    task: str
    precision: Precision = Precision.MEDIUM
    realtime: bool = False
    complexity: int = 5


# ── Path parsing tables ──────────────────────────────────────────────────────

NAMESPACE_PREFIXES = frozenset({"models", "inference"})

# Whole-segment keywords, and the subset also matched inside the task name
HIGH_PRECISION_KEYWORDS = ("precise", "high")
HIGH_PRECISION_TASK_SUBSTRINGS = ("precise",)
LOW_PRECISION_KEYWORDS = ("fast", "low")
LOW_PRECISION_TASK_SUBSTRINGS = ("fast",)
REALTIME_KEYWORDS = ("realtime", "live")
REALTIME_TASK_SUBSTRINGS = ("realtime", "live")

BASE_COMPLEXITY = 5
DOMAIN_COMPLEXITY = {"vision": 2, "nlp": 3}
TASK_COMPLEXITY = {"generation": 2}
HIGH_PRECISION_COMPLEXITY = 2
REALTIME_COMPLEXITY = -1

MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 10


def _mentions(
    task: str,
    modifiers: Sequence[str],
    keywords: Sequence[str],
    task_substrings: Sequence[str],
) -> bool:
    """Task contains a substring keyword, or task or a modifier equals a keyword."""
    if any(s in task for s in task_substrings):
        return True
    return task in keywords or any(k in modifiers for k in keywords)


def parse_path(path: str) -> CognitiveIntent:
    """
    Parse a cognitive intent from a namespace path.

    Examples:
        /models/vision/realtime -> vision/realtime, medium, realtime, complexity 6
        /inference/nlp/precise  -> nlp/precise, high, complexity 10

    Raises:
        InvalidPathError: fewer than two non-empty segments.
    """
    parts = [p for p in path.split("/") if p]

    if len(parts) < 2:
        raise InvalidPathError(
            f"Invalid path {path!r}: must contain at least domain and task"
        )

    # Prefix is only a namespace when something follows domain/task
    if len(parts) >= 3 and parts[0] in NAMESPACE_PREFIXES:
        parts = parts[1:]

    domain, task, modifiers = parts[0], parts[1], parts[2:]

    if _mentions(task, modifiers, HIGH_PRECISION_KEYWORDS, HIGH_PRECISION_TASK_SUBSTRINGS):
        precision = Precision.HIGH
    elif _mentions(task, modifiers, LOW_PRECISION_KEYWORDS, LOW_PRECISION_TASK_SUBSTRINGS):
        precision = Precision.LOW
    else:
        precision = Precision.MEDIUM

    realtime = _mentions(task, modifiers, REALTIME_KEYWORDS, REALTIME_TASK_SUBSTRINGS)

    complexity = BASE_COMPLEXITY
    complexity += DOMAIN_COMPLEXITY.get(domain, 0)
    for keyword, delta in TASK_COMPLEXITY.items():
        if keyword in task:
            complexity += delta
    if precision is Precision.HIGH:
        complexity += HIGH_PRECISION_COMPLEXITY
    if realtime:
        complexity += REALTIME_COMPLEXITY

    return CognitiveIntent(
        domain=domain,
        task=task,
        precision=precision,
        realtime=realtime,
        complexity=max(MIN_COMPLEXITY, min(MAX_COMPLEXITY, complexity)),
    )


# ── Free-text classification ─────────────────────────────────────────────────

DEFAULT_REQUEST_INTENT = CognitiveIntent(
    domain="general",
    task="respond",
    precision=Precision.MEDIUM,
    realtime=False,
    complexity=MIN_COMPLEXITY,
)

DEFAULT_MAX_INTENT_CHARS = 4096


def classify_request(text: Any, max_chars: int = DEFAULT_MAX_INTENT_CHARS) -> CognitiveIntent:
    """
    Classify a free-text request.

    Keyword groups (case-insensitive substring match):
    - create / build            -> task=creation, +2
    - analyze / understand      -> task=analysis, precision=high, +1
    - app / website             -> domain=development, +2
    - ai / machine learning     -> domain=ai, +3

    Complexity starts at 5 and has no upper clamp here.
    Non-string, blank or oversized text returns DEFAULT_REQUEST_INTENT.
    """
    if not isinstance(text, str) or not text.strip():
        logger.warning("Empty or non-text intent %r; using default intent", text)
        return DEFAULT_REQUEST_INTENT
    if len(text) > max_chars:
        logger.warning(
            "Intent of %d chars exceeds limit %d; using default intent",
            len(text), max_chars,
        )
        return DEFAULT_REQUEST_INTENT

    lowered = text.lower()

    domain = "general"
    task = "respond"
    precision = Precision.MEDIUM
    complexity = BASE_COMPLEXITY

    if "create" in lowered or "build" in lowered:
        task = "creation"
        complexity += 2
    if "analyze" in lowered or "understand" in lowered:
        task = "analysis"
        precision = Precision.HIGH
        complexity += 1
    if "app" in lowered or "website" in lowered:
        domain = "development"
        complexity += 2
    if "ai" in lowered or "machine learning" in lowered:
        domain = "ai"
        complexity += 3

    return CognitiveIntent(
        domain=domain,
        task=task,
        precision=precision,
        realtime=False,
        complexity=complexity,
    )
