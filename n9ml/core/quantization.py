# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: QUANTIZATION SELECTION
# ═══════════════════════════════════════════════════════════════════════════════

"""
Intent -> quantization strategy.

High precision buys 32-bit adaptive storage. Low precision or realtime work
drops to 8-bit linear. Everything else lands on 16-bit dynamic. Realtime
vision is the one domain override: it is always 8-bit linear.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from n9ml.core.intent import CognitiveIntent, Precision

SUPPORTED_BITS = (8, 16, 32)


class QuantMethod(Enum):
    """Quantization method."""
    LINEAR = "linear"
    DYNAMIC = "dynamic"
    ADAPTIVE = "adaptive"


@dataclass(frozen=True)
class QuantizationStrategy:
    """Bit width, method and whether accuracy should be preserved."""
    bits: int = 16
    method: QuantMethod = QuantMethod.DYNAMIC
    preserve_accuracy: bool = True

    def __post_init__(self) -> None:
        if self.bits not in SUPPORTED_BITS:
            raise ValueError(
                f"Unsupported bit width {self.bits}; expected one of {SUPPORTED_BITS}"
            )


def optimize_quantization(intent: CognitiveIntent) -> QuantizationStrategy:
    """Choose a quantization strategy for an intent."""
    bits = 16
    method = QuantMethod.DYNAMIC
    preserve_accuracy = True

    if intent.precision is Precision.HIGH:
        bits = 32
        method = QuantMethod.ADAPTIVE
    elif intent.precision is Precision.LOW or intent.realtime:
        bits = 8
        method = QuantMethod.LINEAR
        preserve_accuracy = False

    # Domain override: bits and method only
    if intent.domain == "vision" and intent.realtime:
        bits = 8
        method = QuantMethod.LINEAR

    return QuantizationStrategy(
        bits=bits,
        method=method,
        preserve_accuracy=preserve_accuracy,
    )
