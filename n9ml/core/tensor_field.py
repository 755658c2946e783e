# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: COGNITIVE QUANTUM FIELD
# ═══════════════════════════════════════════════════════════════════════════════

"""
Mount table of tensors keyed by namespace path.

All candidate architectures sit in superposition until a path collapses the
field to one (intent, quantization, architecture) configuration. mount()
creates fresh sample data for that configuration. remount() reinterprets an
existing tensor's data under the configuration of another path, without
going back to any semantic source, and always keeps the shape.

Data is carried as a TensorBuffer: a DType tag plus a flat numpy array whose
dtype must agree with the tag. Conversion between tags goes through one
table covering every (source, target) pair.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from n9ml.core.architecture import (
    Architecture,
    ArchitectureKind,
    Optimization,
    select_architecture,
)
from n9ml.core.intent import parse_path
from n9ml.core.quantization import (
    QuantMethod,
    QuantizationStrategy,
    optimize_quantization,
)

logger = logging.getLogger(__name__)


class DType(Enum):
    """Element type of a tensor buffer."""
    FLOAT32 = "float32"
    UINT8 = "uint8"
    UINT16 = "uint16"

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def bits(self) -> int:
        return {DType.FLOAT32: 32, DType.UINT8: 8, DType.UINT16: 16}[self]

    @property
    def max_value(self) -> float:
        """Largest sample value: 1.0 for floats, 2**bits - 1 for integers."""
        if self is DType.FLOAT32:
            return 1.0
        return float(2 ** self.bits - 1)

    @classmethod
    def for_bits(cls, bits: int) -> "DType":
        return {32: cls.FLOAT32, 16: cls.UINT16, 8: cls.UINT8}[bits]


# uint8 <-> uint16 use 257 (65535 / 255) rather than a full rescale
UINT_WIDEN_RATIO = 257


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _uint_to_float(values: np.ndarray, source: DType, target: DType) -> np.ndarray:
    return (values.astype(np.float64) / source.max_value).astype(np.float32)


def _float_to_uint(values: np.ndarray, source: DType, target: DType) -> np.ndarray:
    scaled = _round_half_up(values.astype(np.float64) * target.max_value)
    return np.clip(scaled, 0, target.max_value).astype(target.numpy_dtype)


def _widen_uint(values: np.ndarray, source: DType, target: DType) -> np.ndarray:
    return (values.astype(np.uint32) * UINT_WIDEN_RATIO).astype(np.uint16)


def _narrow_uint(values: np.ndarray, source: DType, target: DType) -> np.ndarray:
    narrowed = _round_half_up(values.astype(np.float64) / UINT_WIDEN_RATIO)
    return np.clip(narrowed, 0, DType.UINT8.max_value).astype(np.uint8)


def _copy(values: np.ndarray, source: DType, target: DType) -> np.ndarray:
    return values.copy()


_Converter = Callable[[np.ndarray, DType, DType], np.ndarray]

_CONVERSIONS: Dict[Tuple[DType, DType], _Converter] = {
    (DType.FLOAT32, DType.FLOAT32): _copy,
    (DType.FLOAT32, DType.UINT8): _float_to_uint,
    (DType.FLOAT32, DType.UINT16): _float_to_uint,
    (DType.UINT8, DType.FLOAT32): _uint_to_float,
    (DType.UINT8, DType.UINT8): _copy,
    (DType.UINT8, DType.UINT16): _widen_uint,
    (DType.UINT16, DType.FLOAT32): _uint_to_float,
    (DType.UINT16, DType.UINT8): _narrow_uint,
    (DType.UINT16, DType.UINT16): _copy,
}


@dataclass(frozen=True)
class TensorBuffer:
    """Numeric buffer tagged with its DType. Values are a read-only view."""
    dtype: DType
    values: np.ndarray

    def __post_init__(self) -> None:
        if self.values.dtype != self.dtype.numpy_dtype:
            raise ValueError(
                f"Buffer tagged {self.dtype.value} holds {self.values.dtype} data"
            )
        if self.values.ndim != 1:
            raise ValueError("TensorBuffer values must be a flat array")
        # Mounted data is never written in place
        view = self.values.view()
        view.flags.writeable = False
        object.__setattr__(self, "values", view)

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def convert(self, target: DType) -> "TensorBuffer":
        """Element-wise conversion to another DType. Always returns a new buffer."""
        converter = _CONVERSIONS[(self.dtype, target)]
        return TensorBuffer(target, converter(self.values, self.dtype, target))


@dataclass
class Tensor:
    """A mounted tensor. Owned by the mount table that created it."""
    id: str
    buffer: TensorBuffer
    shape: Tuple[int, ...]
    architecture: Architecture
    quantization: QuantizationStrategy

    @property
    def data(self) -> np.ndarray:
        return self.buffer.values

    @property
    def dtype(self) -> DType:
        return self.buffer.dtype


@dataclass(frozen=True)
class QuantumState:
    """One candidate configuration with its prior probability."""
    architecture: Architecture
    quantization: QuantizationStrategy
    probability: float


@dataclass
class TensorFieldConfig:
    """Configuration for the tensor field."""
    element_count: int = 1024
    shape: Tuple[int, ...] = (32, 32)

    # None = unseeded sample data
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self.shape = tuple(int(d) for d in self.shape)
        if int(np.prod(self.shape)) != self.element_count:
            raise ValueError(
                f"shape {self.shape} does not hold {self.element_count} elements"
            )


def _catalog() -> Dict[str, List[QuantumState]]:
    """Static superposition catalog. Probabilities per domain sum to 1."""
    A, K, O = Architecture, ArchitectureKind, Optimization
    Q, M = QuantizationStrategy, QuantMethod
    return {
        "vision": [
            QuantumState(A(K.CNN, 12, 25_000_000, O.SPEED), Q(8, M.LINEAR, False), 0.3),
            QuantumState(A(K.CNN, 18, 60_000_000, O.ACCURACY), Q(32, M.ADAPTIVE, True), 0.4),
            QuantumState(A(K.HYBRID, 24, 150_000_000, O.MEMORY), Q(16, M.DYNAMIC, True), 0.3),
        ],
        "nlp": [
            QuantumState(A(K.TRANSFORMER, 12, 110_000_000, O.SPEED), Q(16, M.DYNAMIC, True), 0.5),
            QuantumState(A(K.TRANSFORMER, 24, 340_000_000, O.ACCURACY), Q(32, M.ADAPTIVE, True), 0.3),
            QuantumState(A(K.HYBRID, 36, 1_300_000_000, O.MEMORY), Q(16, M.ADAPTIVE, True), 0.2),
        ],
    }


class CognitiveQuantumField:
    """
    Path-addressed tensor mount table.

    mount()   path -> fresh tensor for the path's configuration
    remount() tensor + path -> same data reinterpreted for the new path
    unmount() drop a path (tensors already handed out stay valid)
    """

    def __init__(self, config: Optional[TensorFieldConfig] = None) -> None:
        self.config = config or TensorFieldConfig()

        self._rng = np.random.RandomState(self.config.seed)
        self._mounted: Dict[str, Tensor] = {}
        self._quantum_states = _catalog()

        self._lock = threading.RLock()
        self._remount_counter = itertools.count(1)

    # ── Public Methods ───────────────────────────────────────────────────────

    def mount(self, path: str) -> Tensor:
        """Collapse the field for a path and mount a new tensor there."""
        intent = parse_path(path)
        quant = optimize_quantization(intent)
        arch = select_architecture(intent, quant)

        with self._lock:
            tensor = Tensor(
                id=f"tensor_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
                buffer=self._sample_buffer(DType.for_bits(quant.bits)),
                shape=self.config.shape,
                architecture=arch,
                quantization=quant,
            )
            self._mounted[path] = tensor

        logger.debug(
            "Mounted %s at %s (%s, %s)",
            tensor.id, path, tensor.dtype.value, arch.kind.value,
        )
        return tensor

    def remount(self, source: Tensor, new_path: str) -> Tensor:
        """
        Reinterpret a tensor's data under the configuration of new_path.

        The source tensor is never modified. The result has a fresh id,
        the same shape, and replaces whatever was mounted at new_path.
        """
        intent = parse_path(new_path)
        quant = optimize_quantization(intent)
        arch = select_architecture(intent, quant)

        buffer = source.buffer.convert(DType.for_bits(quant.bits))

        with self._lock:
            tensor = Tensor(
                id=(
                    f"reinterpreted_{source.id}_{int(time.time() * 1000)}"
                    f"_{next(self._remount_counter)}"
                ),
                buffer=buffer,
                shape=tuple(source.shape),
                architecture=arch,
                quantization=quant,
            )
            self._mounted[new_path] = tensor

        logger.debug(
            "Remounted %s at %s (%s -> %s)",
            source.id, new_path, source.dtype.value, buffer.dtype.value,
        )
        return tensor

    def unmount(self, path: str) -> bool:
        """Remove the tensor at path. Returns whether one was mounted."""
        with self._lock:
            return self._mounted.pop(path, None) is not None

    def get_mounted_tensors(self) -> Dict[str, Tensor]:
        """Snapshot of the mount table."""
        with self._lock:
            return dict(self._mounted)

    def get_quantum_states(self) -> Dict[str, List[QuantumState]]:
        """Static candidate catalog per domain, for introspection only."""
        return {domain: list(states) for domain, states in self._quantum_states.items()}

    def get_state(self) -> dict:
        """Summarize the mount table."""
        with self._lock:
            mounts = {
                path: {
                    "id": t.id,
                    "dtype": t.dtype.value,
                    "kind": t.architecture.kind.value,
                    "bits": t.quantization.bits,
                    "shape": list(t.shape),
                }
                for path, t in self._mounted.items()
            }
        return {
            "mounted": len(mounts),
            "mounts": mounts,
            "element_count": self.config.element_count,
        }

    # ── Internal ─────────────────────────────────────────────────────────────

    def _sample_buffer(self, dtype: DType) -> TensorBuffer:
        """Pseudo-random stand-in data scaled to the dtype's range."""
        n = self.config.element_count
        if dtype is DType.FLOAT32:
            values = self._rng.random_sample(n).astype(np.float32)
        else:
            values = self._rng.randint(
                0, int(dtype.max_value) + 1, size=n
            ).astype(dtype.numpy_dtype)
        return TensorBuffer(dtype, values)
