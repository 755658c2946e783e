# ═══════════════════════════════════════════════════════════════════════════════
# PART 0: ERRORS
# ═══════════════════════════════════════════════════════════════════════════════

"""
Exception taxonomy shared by the tensor field and the persona agent.

Only two conditions are surfaced to callers under well-formed input: a mount
path that is too short to carry a domain and a task, and a spawn request that
reaches the configured recursion ceiling.
"""

from __future__ import annotations


class N9mlError(Exception):
    """Base class for n9ml errors."""
    pass


class InvalidPathError(N9mlError, ValueError):
    """Raised when a mount path has fewer than two segments."""
    pass


class RecursionLimitError(N9mlError):
    """Raised when a spawn request is at or beyond the recursion ceiling."""

    def __init__(self, recursion_level: int, recursion_depth: int) -> None:
        self.recursion_level = recursion_level
        self.recursion_depth = recursion_depth
        super().__init__(
            f"Maximum recursion depth {recursion_depth} exceeded "
            f"(requested level {recursion_level})"
        )
