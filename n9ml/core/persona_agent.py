# ═══════════════════════════════════════════════════════════════════════════════
# PART 8: PERSONA AGENT (putting it all together)
# ═══════════════════════════════════════════════════════════════════════════════

"""
Observe -> Orient -> Decide -> Act -> Adapt over free-text requests.

The agent owns a tensor field (persona tensors are mounted at construction),
a bounded RAG memory, the spawned-repository registry and an adaptation
engine over its traits. Each call to process_intent() runs one full cycle;
only the latest cycle's stage records are kept.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from n9ml.core.adaptation import (
    AdaptationConfig,
    AdaptationEngine,
    AdaptationReport,
    PerformanceMetrics,
    PersonaTraits,
)
from n9ml.core.embedding import Embedder, RandomEmbedder
from n9ml.core.errors import RecursionLimitError
from n9ml.core.intent import (
    DEFAULT_MAX_INTENT_CHARS,
    CognitiveIntent,
    classify_request,
)
from n9ml.core.rag_memory import RAGMemory, RAGMemoryConfig, RetrievalResult
from n9ml.core.spawning import (
    RepoSpawnRequest,
    SpawnResult,
    build_artifact_bundle,
    build_memory_extension,
    generate_repo_id,
    infer_architecture,
    infer_technologies,
)
from n9ml.core.tensor_field import CognitiveQuantumField, Tensor, TensorFieldConfig

logger = logging.getLogger(__name__)

SPAWN_COMPLEXITY_THRESHOLD = 6
TRAIT_EMPHASIS_THRESHOLD = 0.7

DEFAULT_PERSONA_MOUNTS = (
    "/persona/cognitive/modules",
    "/persona/memory/rag",
    "/persona/task/bolt",
    "/persona/autonomy/recursive",
    "/persona/self/meta",
)


# ── Stage records ────────────────────────────────────────────────────────────


@dataclass
class Observation:
    text: str
    context: Tuple[str, ...]
    intent: CognitiveIntent
    timestamp: float


@dataclass
class Orientation:
    intent: CognitiveIntent
    inserted: List[str]
    evicted: List[str]
    graph_node: Optional[str]
    graph_extensions: int
    timestamp: float


@dataclass
class Decision:
    should_spawn: bool
    spawn_requests: List[RepoSpawnRequest]
    response_type: str       # "direct" or "repo-spawn"
    complexity: int
    timestamp: float


@dataclass
class ActionResult:
    response: str
    spawned_repos: Optional[List[RepoSpawnRequest]]
    spawn_results: List[SpawnResult]
    memory_updates: Dict[str, int]
    fallback: bool
    timestamp: float


@dataclass
class OODALoopState:
    """Latest cycle only. Each field is overwritten every cycle."""
    observe: Optional[Observation] = None
    orient: Optional[Orientation] = None
    decide: Optional[Decision] = None
    act: Optional[ActionResult] = None


@dataclass
class ProcessResult:
    """What process_intent() hands back to its caller."""
    response: str
    intent: CognitiveIntent
    spawned_repos: Optional[List[RepoSpawnRequest]]
    memory_updates: Dict[str, int]
    adaptations: AdaptationReport
    # Set by the agent on a rejected spawn, or by callers that hit an error
    fallback: bool = False


@dataclass
class PersonaAgentConfig:
    """Top-level configuration aggregating all component configs."""
    name: str = "persona"

    # Component configs (defaults used if None)
    traits: Optional[PersonaTraits] = None
    memory_config: Optional[RAGMemoryConfig] = None
    field_config: Optional[TensorFieldConfig] = None
    adaptation_config: Optional[AdaptationConfig] = None

    max_intent_chars: int = DEFAULT_MAX_INTENT_CHARS
    persona_mounts: Tuple[str, ...] = DEFAULT_PERSONA_MOUNTS


class PersonaAgent:
    """
    Persona agent with bounded recursive repository spawning.

    Wires together:
    - Cognitive quantum field (persona tensors)
    - RAG memory (context window + semantic graph)
    - Spawned-repository registry
    - Adaptation engine over the persona traits
    """

    def __init__(
        self,
        config: Optional[PersonaAgentConfig] = None,
        embedder: Optional[Embedder] = None,
    ) -> None:
        self.config = config or PersonaAgentConfig()
        self.name = self.config.name

        # Own copy; callers' trait objects are never mutated
        self.traits = replace(self.config.traits) if self.config.traits else PersonaTraits()

        memory_config = self.config.memory_config or RAGMemoryConfig()
        self.embedder = embedder or RandomEmbedder(dim=memory_config.embedding_dim)
        if self.embedder.dim != memory_config.embedding_dim:
            raise ValueError(
                f"Embedder dim {self.embedder.dim} does not match memory "
                f"embedding_dim {memory_config.embedding_dim}"
            )

        self.quantum_field = CognitiveQuantumField(self.config.field_config)
        self.memory = RAGMemory(self.embedder, memory_config)
        self.adaptation = AdaptationEngine(self.traits, self.config.adaptation_config)

        self.ooda = OODALoopState()
        self.spawned_repos: Dict[str, RepoSpawnRequest] = {}

        self.persona_tensors: Dict[str, Tensor] = {
            path: self.quantum_field.mount(path) for path in self.config.persona_mounts
        }

        self._cycle: int = 0
        self._cycle_lock = threading.Lock()
        self._spawn_lock = threading.RLock()

    # ── Public Methods ───────────────────────────────────────────────────────

    def process_intent(self, text: Any, context: Any = None) -> ProcessResult:
        """
        Run one observe/orient/decide/act/adapt cycle.

        Never raises for malformed text or context: those are normalized
        to the default request intent and an empty context.
        """
        context_items = self._normalize_context(context)

        with self._cycle_lock:
            self._cycle += 1
            cycle = self._cycle

            intent = self._observe(text, context_items)
            self._orient(intent, context_items, cycle)
            decision = self._decide(intent)
            action = self._act(decision, cycle)
            adaptations = self._adapt(action)

        return ProcessResult(
            response=action.response,
            intent=intent,
            spawned_repos=action.spawned_repos,
            memory_updates=action.memory_updates,
            adaptations=adaptations,
            fallback=action.fallback,
        )

    def spawn_repository(self, request: RepoSpawnRequest) -> SpawnResult:
        """
        Register a derived repository.

        Raises:
            RecursionLimitError: request.recursion_level >= traits.recursion_depth.
                Nothing is modified in that case.
            ValueError: the embedder returned a vector of the wrong length.
                Nothing is modified in that case either.
        """
        with self._spawn_lock:
            depth = self.traits.recursion_depth
            if request.recursion_level >= depth:
                logger.warning(
                    "Spawn rejected at recursion level %d (ceiling %d)",
                    request.recursion_level, depth,
                )
                raise RecursionLimitError(request.recursion_level, depth)

            repo_id = generate_repo_id()
            while repo_id in self.spawned_repos:
                repo_id = generate_repo_id()

            # Build everything before the first write
            intent_embedding = self.memory.as_vector(
                f"repo:{repo_id}", self.embedder.embed(request.intent)
            )
            spawn_embedding = self.memory.as_vector(
                f"self-model:spawn:{repo_id}",
                self.embedder.embed(f"spawned:{repo_id}:{request.intent}"),
            )
            bundle = build_artifact_bundle(request, repo_id)
            extension = build_memory_extension(request, repo_id, intent_embedding)

            self.spawned_repos[repo_id] = request
            self.memory.insert(f"repo:{repo_id}", intent_embedding)
            self.memory.insert(f"self-model:spawn:{repo_id}", spawn_embedding)
            self.memory.link(repo_id, [request.intent])

        logger.info(
            "Spawned %s (%s, level %d)",
            repo_id, request.architecture.value, request.recursion_level,
        )
        return SpawnResult(
            repo_id=repo_id,
            artifact_bundle=bundle,
            memory_extension=extension,
        )

    def retrieve_from_rag(self, query: str, max_results: int = 5) -> RetrievalResult:
        """Similarity search over the memory store."""
        return self.memory.retrieve(query, max_results=max_results)

    def perform_self_modification(self) -> AdaptationReport:
        """Adapt traits from the baseline performance signal."""
        return self.adaptation.adapt(PerformanceMetrics.baseline())

    def get_persona_state(self) -> dict:
        return {
            "name": self.name,
            "traits": asdict(self.traits),
            "memory_size": len(self.memory),
            "spawned_repo_count": len(self.spawned_repos),
            "ooda_state": replace(self.ooda),
            "tensor_mounts": len(self.quantum_field.get_mounted_tensors()),
            "cycles": self._cycle,
        }

    def introspect(self) -> dict:
        """Qualitative self-report plus the numbers behind it."""
        self_model = self.persona_tensors.get("/persona/self/meta")
        return {
            "self_model": (
                {
                    "id": self_model.id,
                    "dtype": self_model.dtype.value,
                    "kind": self_model.architecture.kind.value,
                }
                if self_model is not None
                else None
            ),
            "cognitive_health": "operational",
            "adaptation_steps": self.adaptation.steps,
            "recursive_capability": (
                "active" if self.traits.recursion_depth > 0 else "disabled"
            ),
            "bolt_integration": (
                "enabled" if self.traits.bolt_integration else "disabled"
            ),
            "spawned_repos": sorted(self.spawned_repos),
            "memory": self.memory.get_state(),
            "tensor_field": self.quantum_field.get_state(),
        }

    # ── OODA stages ──────────────────────────────────────────────────────────

    def _observe(self, text: Any, context: Tuple[str, ...]) -> CognitiveIntent:
        intent = classify_request(text, max_chars=self.config.max_intent_chars)
        self.ooda.observe = Observation(
            text=text if isinstance(text, str) else "",
            context=context,
            intent=intent,
            timestamp=time.time(),
        )
        return intent

    def _orient(self, intent: CognitiveIntent, context: Tuple[str, ...], cycle: int) -> None:
        inserted: List[str] = []
        evicted: List[str] = []
        for item in context:
            evicted += self.memory.insert(item, self.embedder.embed(item))
            inserted.append(item)

        graph_node = None
        graph_extensions = 0
        if context:
            graph_node = f"cycle_{cycle}"
            graph_extensions = self.memory.link(graph_node, context)

        self.ooda.orient = Orientation(
            intent=intent,
            inserted=inserted,
            evicted=evicted,
            graph_node=graph_node,
            graph_extensions=graph_extensions,
            timestamp=time.time(),
        )

    def _decide(self, intent: CognitiveIntent) -> Decision:
        requests: List[RepoSpawnRequest] = []

        should_spawn = (
            self.traits.bolt_integration
            and (intent.task == "creation" or intent.domain == "development")
            and intent.complexity > SPAWN_COMPLEXITY_THRESHOLD
        )
        if should_spawn:
            requests.append(RepoSpawnRequest(
                intent=f"Create repository for {intent.domain} {intent.task}",
                technologies=infer_technologies(intent.domain),
                architecture=infer_architecture(
                    intent.domain, intent.task, intent.complexity
                ),
                recursion_level=0,
            ))

        decision = Decision(
            should_spawn=should_spawn,
            spawn_requests=requests,
            response_type="repo-spawn" if should_spawn else "direct",
            complexity=intent.complexity,
            timestamp=time.time(),
        )
        self.ooda.decide = decision
        return decision

    def _act(self, decision: Decision, cycle: int) -> ActionResult:
        spawned: Optional[List[RepoSpawnRequest]] = None
        results: List[SpawnResult] = []
        fallback = False
        response = ""

        if decision.should_spawn:
            spawned = []
            try:
                for request in decision.spawn_requests:
                    results.append(self.spawn_repository(request))
                    spawned.append(request)
            except RecursionLimitError as exc:
                logger.warning("Falling back to direct response: %s", exc)
                fallback = True

            response = "\n".join(f"Spawned repository: {r.repo_id}" for r in results)
            if fallback and not results:
                spawned = None
                response = self._direct_response(decision)
        else:
            response = self._direct_response(decision)

        self.memory.insert(f"execution:{cycle}", self.embedder.embed(response))

        orientation = self.ooda.orient
        memory_updates = {
            "new_embeddings": 1 + 2 * len(results),
            "updated_contexts": len(orientation.inserted) if orientation else 0,
            "graph_extensions": (
                (orientation.graph_extensions if orientation else 0) + len(results)
            ),
            "evicted": len(orientation.evicted) if orientation else 0,
        }

        action = ActionResult(
            response=response,
            spawned_repos=spawned,
            spawn_results=results,
            memory_updates=memory_updates,
            fallback=fallback,
            timestamp=time.time(),
        )
        self.ooda.act = action
        return action

    def _adapt(self, action: ActionResult) -> AdaptationReport:
        metrics = PerformanceMetrics.from_cycle(
            spawned=len(action.spawn_results),
            fallback=action.fallback,
        )
        return self.adaptation.adapt(metrics)

    # ── Internal ─────────────────────────────────────────────────────────────

    def _direct_response(self, decision: Decision) -> str:
        parts = ["I understand your request."]
        if self.traits.creativity > TRAIT_EMPHASIS_THRESHOLD:
            parts.append("Let me explore some creative possibilities for this.")
        if self.traits.precision > TRAIT_EMPHASIS_THRESHOLD:
            parts.append("I'll provide a detailed and accurate solution.")
        parts.append(
            f"Based on my cognitive analysis (complexity: {decision.complexity}), "
            f"here's my response."
        )
        return " ".join(parts)

    @staticmethod
    def _normalize_context(context: Any) -> Tuple[str, ...]:
        """Keep non-blank strings; anything else becomes an empty context."""
        if context is None:
            return ()
        if isinstance(context, str):
            context = [context]
        if not isinstance(context, Iterable):
            logger.warning("Ignoring non-iterable context %r", context)
            return ()
        return tuple(c for c in context if isinstance(c, str) and c.strip())


def create_agent(
    name: str = "persona",
    traits: Optional[PersonaTraits] = None,
    embedder: Optional[Embedder] = None,
) -> PersonaAgent:
    """Create a persona agent with default component configs."""
    return PersonaAgent(PersonaAgentConfig(name=name, traits=traits), embedder=embedder)
