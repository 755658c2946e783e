# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: ARCHITECTURE SELECTION
# ═══════════════════════════════════════════════════════════════════════════════

"""
(intent, quantization) -> architecture descriptor.

Kind follows the domain, optimization follows the quantization, and size
grows with complexity: layers = max(2, floor(1.5 * complexity)) and
parameters = 2 ** (complexity + 10).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from n9ml.core.intent import CognitiveIntent
from n9ml.core.quantization import QuantizationStrategy

MIN_LAYERS = 2


class ArchitectureKind(Enum):
    """Network family."""
    TRANSFORMER = "transformer"
    CNN = "cnn"
    RNN = "rnn"
    HYBRID = "hybrid"


class Optimization(Enum):
    """What the architecture is tuned for."""
    SPEED = "speed"
    MEMORY = "memory"
    ACCURACY = "accuracy"


@dataclass(frozen=True)
class Architecture:
    """Architecture descriptor."""
    kind: ArchitectureKind
    layers: int
    parameters: int
    optimization: Optimization

    def __post_init__(self) -> None:
        if self.layers < MIN_LAYERS:
            raise ValueError(f"layers must be >= {MIN_LAYERS}, got {self.layers}")
        if self.parameters <= 0:
            raise ValueError(f"parameters must be positive, got {self.parameters}")


def select_architecture(
    intent: CognitiveIntent,
    quant: QuantizationStrategy,
) -> Architecture:
    """Collapse an intent and its quantization to one architecture."""
    if intent.domain == "vision":
        kind = ArchitectureKind.CNN
    elif intent.domain == "sequence" or "time" in intent.task:
        kind = ArchitectureKind.RNN
    elif intent.domain == "nlp":
        kind = ArchitectureKind.TRANSFORMER
    elif intent.complexity > 7 and intent.domain == "multimodal":
        kind = ArchitectureKind.HYBRID
    else:
        kind = ArchitectureKind.TRANSFORMER

    if intent.realtime or quant.bits == 8:
        optimization = Optimization.SPEED
    elif quant.bits == 16:
        optimization = Optimization.MEMORY
    else:
        optimization = Optimization.ACCURACY

    return Architecture(
        kind=kind,
        layers=max(MIN_LAYERS, math.floor(intent.complexity * 1.5)),
        parameters=2 ** (intent.complexity + 10),
        optimization=optimization,
    )
