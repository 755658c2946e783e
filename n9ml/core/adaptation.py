# ═══════════════════════════════════════════════════════════════════════════════
# PART 7: SELF-MODIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

"""
ECAN-style feedback: synthetic performance metrics nudge persona traits.

Every adaptation step:
1. scales adaptation_rate (x1.1 on success, x1.2 otherwise)
2. adjusts creativity / precision on threshold checks
3. clamps creativity and precision to [0, 1]
4. emits advisory tensor reshape values (never applied to mounted tensors)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional

import numpy as np

from n9ml.core.embedding import DEFAULT_EMBEDDING_DIM

logger = logging.getLogger(__name__)


@dataclass
class PersonaTraits:
    """Bounded persona scalars."""
    creativity: float = 0.5          # 0-1, creative divergence
    precision: float = 0.5           # 0-1, analytical rigor
    adaptation_rate: float = 0.1     # Self-modification learning rate
    recursion_depth: int = 3         # Spawn ceiling (level must stay below it)
    bolt_integration: bool = True    # Repository spawning enabled

    def __post_init__(self) -> None:
        if self.recursion_depth < 0:
            raise ValueError(f"recursion_depth must be >= 0, got {self.recursion_depth}")

    def clamp(self) -> None:
        self.creativity = float(np.clip(self.creativity, 0.0, 1.0))
        self.precision = float(np.clip(self.precision, 0.0, 1.0))


@dataclass(frozen=True)
class PerformanceMetrics:
    """Synthetic performance signal for one adaptation step."""
    success_rate: float = 0.85
    response_time: float = 250.0     # ms
    user_satisfaction: float = 0.9
    repo_spawn_success: float = 0.95
    memory_retrieval: float = 0.88
    response_quality: float = 0.9

    @property
    def composite(self) -> float:
        return float(np.mean([
            self.success_rate,
            self.user_satisfaction,
            self.repo_spawn_success,
            self.memory_retrieval,
        ]))

    @classmethod
    def baseline(cls) -> "PerformanceMetrics":
        return cls()

    @classmethod
    def from_cycle(cls, spawned: int, fallback: bool) -> "PerformanceMetrics":
        """Deterministic metrics for one decision cycle."""
        if fallback:
            return cls(
                success_rate=0.5,
                response_time=150.0,
                repo_spawn_success=0.0,
                response_quality=0.5,
            )
        return cls(
            response_time=150.0,
            repo_spawn_success=1.0 if spawned else 0.95,
        )


@dataclass
class AdaptationConfig:
    """Thresholds and gains for trait adaptation."""
    success_threshold: float = 0.8
    reinforce_factor: float = 1.1
    sensitize_factor: float = 1.2

    spawn_success_threshold: float = 0.9
    creativity_gain: float = 1.05

    response_time_threshold: float = 500.0
    precision_gain: float = 1.1

    failure_quality_threshold: float = 0.6
    failure_precision_gain: float = 1.15

    # Reshape suggestions
    base_semantic_dim: int = DEFAULT_EMBEDDING_DIM
    activation_scale: int = 64
    activation_floor: int = 32


@dataclass(frozen=True)
class ReshapeSuggestion:
    """Advisory memory-kernel shape. Not applied to the mount table."""
    semantic_dim: int
    activation_level: int
    feedback_factor: float


@dataclass
class AdaptationReport:
    """Result of one adaptation step."""
    metrics: PerformanceMetrics
    composite: float
    adaptation_rate: float
    trait_adaptations: Dict[str, str] = field(default_factory=dict)
    tensor_updates: Dict[str, str] = field(default_factory=dict)
    reshape: Optional[ReshapeSuggestion] = None

    def to_dict(self) -> dict:
        return asdict(self)


class AdaptationEngine:
    """Applies performance feedback to a PersonaTraits instance."""

    def __init__(
        self,
        traits: PersonaTraits,
        config: Optional[AdaptationConfig] = None,
    ) -> None:
        self.traits = traits
        self.config = config or AdaptationConfig()
        self.steps: int = 0
        self._lock = threading.Lock()

    # ── Public Methods ───────────────────────────────────────────────────────

    def adapt(self, metrics: PerformanceMetrics) -> AdaptationReport:
        """Run one adaptation step."""
        cfg = self.config
        composite = metrics.composite
        trait_adaptations: Dict[str, str] = {}

        with self._lock:
            traits = self.traits

            if composite > cfg.success_threshold:
                traits.adaptation_rate *= cfg.reinforce_factor
            else:
                traits.adaptation_rate *= cfg.sensitize_factor
                if metrics.response_quality < cfg.failure_quality_threshold:
                    traits.precision *= cfg.failure_precision_gain
                    trait_adaptations["precision"] = "increased_from_failure"

            if metrics.repo_spawn_success > cfg.spawn_success_threshold:
                traits.creativity *= cfg.creativity_gain
                trait_adaptations["creativity"] = "increased"

            if metrics.response_time > cfg.response_time_threshold:
                traits.precision *= cfg.precision_gain
                trait_adaptations["precision_response_time"] = "increased"

            traits.clamp()
            self.steps += 1
            adaptation_rate = traits.adaptation_rate

        report = AdaptationReport(
            metrics=metrics,
            composite=composite,
            adaptation_rate=adaptation_rate,
            trait_adaptations=trait_adaptations,
            tensor_updates=self._tensor_updates(metrics),
            reshape=self.suggest_reshape(composite),
        )
        logger.info(
            "Adaptation step %d: composite=%.3f rate=%.4f %s",
            self.steps, composite, adaptation_rate, trait_adaptations or "",
        )
        return report

    def suggest_reshape(self, composite: float) -> ReshapeSuggestion:
        """Memory-kernel shape suggested by a composite score."""
        cfg = self.config
        factor = 0.5 + composite
        return ReshapeSuggestion(
            semantic_dim=max(1, int(round(cfg.base_semantic_dim * factor))),
            activation_level=max(
                cfg.activation_floor, int(round(cfg.activation_scale * composite))
            ),
            feedback_factor=factor,
        )

    # ── Internal ─────────────────────────────────────────────────────────────

    def _tensor_updates(self, metrics: PerformanceMetrics) -> Dict[str, str]:
        updates: Dict[str, str] = {}
        if metrics.success_rate < 0.8:
            updates["cognitive_modules"] = "increased_attention_weights"
        if metrics.memory_retrieval < 0.85:
            updates["memory_kernel"] = "enhanced_embedding_precision"
        return updates
