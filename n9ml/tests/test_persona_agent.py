"""Tests for PersonaAgent: the decision cycle, spawning, memory wiring."""

import threading

import pytest

from n9ml.core.adaptation import PersonaTraits
from n9ml.core.embedding import HashEmbedder, RandomEmbedder
from n9ml.core.errors import RecursionLimitError
from n9ml.core.intent import DEFAULT_REQUEST_INTENT
from n9ml.core.persona_agent import (
    DEFAULT_PERSONA_MOUNTS,
    PersonaAgent,
    PersonaAgentConfig,
    create_agent,
)
from n9ml.core.rag_memory import RAGMemoryConfig
from n9ml.core.spawning import RepoArchitecture, RepoSpawnRequest
from n9ml.core.tensor_field import TensorFieldConfig

ECOMMERCE = "Create a full-stack e-commerce application with AI recommendations"


def _traits(**overrides):
    values = dict(
        creativity=0.8,
        precision=0.9,
        adaptation_rate=0.1,
        recursion_depth=3,
        bolt_integration=True,
    )
    values.update(overrides)
    return PersonaTraits(**values)


def make_agent(**trait_overrides):
    config = PersonaAgentConfig(
        name="test",
        traits=_traits(**trait_overrides),
        field_config=TensorFieldConfig(seed=0),
    )
    return PersonaAgent(config, embedder=HashEmbedder())


@pytest.fixture
def agent():
    return make_agent()


# ── Construction ─────────────────────────────────────────────────────────────


def test_initial_state(agent):
    state = agent.get_persona_state()

    assert state["name"] == "test"
    assert state["traits"]["creativity"] == 0.8
    assert state["traits"]["recursion_depth"] == 3
    assert state["memory_size"] == 0
    assert state["spawned_repo_count"] == 0
    assert state["tensor_mounts"] == len(DEFAULT_PERSONA_MOUNTS)
    assert state["cycles"] == 0

    ooda = state["ooda_state"]
    assert ooda.observe is None and ooda.act is None


def test_persona_tensors_mounted(agent):
    mounted = agent.quantum_field.get_mounted_tensors()
    assert set(mounted) == set(DEFAULT_PERSONA_MOUNTS)
    assert set(agent.persona_tensors) == set(DEFAULT_PERSONA_MOUNTS)


def test_caller_traits_not_mutated():
    traits = _traits()
    agent = create_agent("t", traits=traits, embedder=HashEmbedder())
    agent.process_intent("hello")

    assert traits.adaptation_rate == 0.1
    assert agent.traits.adaptation_rate != 0.1


def test_embedder_dim_mismatch():
    with pytest.raises(ValueError):
        PersonaAgent(embedder=RandomEmbedder(dim=16))


def test_custom_dim():
    config = PersonaAgentConfig(memory_config=RAGMemoryConfig(embedding_dim=16))
    agent = PersonaAgent(config, embedder=HashEmbedder(dim=16))
    agent.process_intent("hello", context=["ctx"])
    assert len(agent.memory) == 2


def test_create_agent_defaults():
    agent = create_agent()
    assert agent.name == "persona"
    assert isinstance(agent.embedder, RandomEmbedder)


# ── Decision cycle ───────────────────────────────────────────────────────────


def test_simple_intent_direct_response(agent):
    result = agent.process_intent("Help me understand JavaScript closures")

    assert result.spawned_repos is None
    assert result.fallback is False
    assert result.intent.task == "analysis"
    assert result.response.startswith("I understand your request.")
    assert "creative possibilities" in result.response
    assert "detailed and accurate" in result.response
    assert "(complexity: 6)" in result.response


def test_quiet_traits_plain_response():
    agent = make_agent(creativity=0.2, precision=0.2)
    result = agent.process_intent("hello there")

    assert "creative" not in result.response
    assert "detailed" not in result.response


def test_complex_intent_spawns(agent):
    result = agent.process_intent(ECOMMERCE)

    assert result.intent.domain == "ai"
    assert result.intent.complexity == 12
    assert len(result.spawned_repos) == 1

    request = result.spawned_repos[0]
    assert request.architecture == RepoArchitecture.AI_AGENT
    assert request.intent == "Create repository for ai creation"
    assert request.recursion_level == 0
    assert "pytorch" in request.technologies

    assert result.response.startswith("Spawned repository: repo_")
    assert len(agent.spawned_repos) == 1
    assert result.memory_updates["new_embeddings"] == 3


def test_development_intent_spawns_fullstack(agent):
    result = agent.process_intent("Build a website")
    assert result.spawned_repos[0].architecture == RepoArchitecture.FULLSTACK


def test_bolt_disabled_never_spawns():
    agent = make_agent(bolt_integration=False)
    result = agent.process_intent(ECOMMERCE)

    assert result.spawned_repos is None
    assert agent.spawned_repos == {}
    assert agent.ooda.decide.response_type == "direct"


def test_zero_depth_falls_back():
    agent = make_agent(recursion_depth=0)
    result = agent.process_intent(ECOMMERCE)

    assert result.fallback is True
    assert result.spawned_repos is None
    assert result.response.startswith("I understand your request.")
    assert agent.spawned_repos == {}
    assert agent.introspect()["recursive_capability"] == "disabled"


def test_fallback_lowers_composite():
    agent = make_agent(recursion_depth=0)
    result = agent.process_intent(ECOMMERCE)

    assert result.adaptations.composite < 0.8
    assert "precision" in result.adaptations.trait_adaptations


def test_ooda_state_filled(agent):
    agent.process_intent(ECOMMERCE, context=["shop", "recommendations"])
    ooda = agent.get_persona_state()["ooda_state"]

    assert ooda.observe.text == ECOMMERCE
    assert ooda.observe.context == ("shop", "recommendations")
    assert ooda.orient.inserted == ["shop", "recommendations"]
    assert ooda.orient.graph_node == "cycle_1"
    assert ooda.decide.should_spawn is True
    assert ooda.decide.response_type == "repo-spawn"
    assert ooda.act.response.startswith("Spawned repository:")


def test_ooda_keeps_latest_cycle_only(agent):
    agent.process_intent(ECOMMERCE)
    agent.process_intent("hello there")

    assert agent.ooda.observe.text == "hello there"
    assert agent.ooda.decide.should_spawn is False
    assert agent.get_persona_state()["cycles"] == 2


def test_context_stored_and_linked(agent):
    result = agent.process_intent("hello", context=["first note", "second note"])

    assert "first note" in agent.memory
    assert "execution:1" in agent.memory
    assert agent.memory.semantic_graph["cycle_1"] == frozenset({"first note", "second note"})
    assert result.memory_updates == {
        "new_embeddings": 1,
        "updated_contexts": 2,
        "graph_extensions": 2,
        "evicted": 0,
    }


def test_memory_grows_until_window_full(agent):
    sizes = []
    for i in range(10):
        agent.process_intent("hello", context=[f"note {i}"])
        sizes.append(len(agent.memory))
    assert sizes == sorted(sizes)
    assert sizes[-1] == 20


def test_large_context_bounded(agent):
    result = agent.process_intent("hello", context=[f"c{i}" for i in range(120)])

    assert len(agent.memory.context_window) <= 100
    assert result.memory_updates["evicted"] == 51
    assert "c0" not in agent.memory
    # Graph keeps labels of evicted entries
    assert "c0" in agent.memory.semantic_graph["cycle_1"]


@pytest.mark.parametrize("text", [None, "", "   ", 42, "x" * 10_000, {"a": 1}])
def test_malformed_text_does_not_raise(agent, text):
    result = agent.process_intent(text)

    assert result.intent == DEFAULT_REQUEST_INTENT
    assert result.spawned_repos is None
    assert result.response


@pytest.mark.parametrize("context", [5, 3.5, object(), ["ok", None, 7, "  "], "single"])
def test_malformed_context_does_not_raise(agent, context):
    result = agent.process_intent("hello", context=context)
    assert result.memory_updates["updated_contexts"] <= 1


def test_successful_cycle_raises_creativity(agent):
    result = agent.process_intent(ECOMMERCE)

    assert result.adaptations.trait_adaptations.get("creativity") == "increased"
    assert agent.traits.creativity == pytest.approx(0.84)
    assert agent.adaptation.steps == 1


# ── Spawning ─────────────────────────────────────────────────────────────────


def test_spawn_registers_everywhere(agent):
    request = RepoSpawnRequest(
        intent="Todo App",
        technologies=("typescript", "react"),
        architecture=RepoArchitecture.FRONTEND,
    )
    result = agent.spawn_repository(request)

    assert agent.spawned_repos[result.repo_id] is request
    assert f"repo:{result.repo_id}" in agent.memory
    assert f"self-model:spawn:{result.repo_id}" in agent.memory
    assert agent.memory.semantic_graph[result.repo_id] == frozenset({"Todo App"})
    assert result.artifact_bundle.id == result.repo_id
    assert result.memory_extension.repo_id == result.repo_id


def test_spawn_at_ceiling_rejected(agent):
    memory_before = len(agent.memory)
    mounts_before = agent.quantum_field.get_mounted_tensors()

    request = RepoSpawnRequest(intent="too deep", recursion_level=3)
    with pytest.raises(RecursionLimitError) as exc_info:
        agent.spawn_repository(request)

    assert exc_info.value.recursion_level == 3
    assert exc_info.value.recursion_depth == 3
    assert "Maximum recursion depth 3" in str(exc_info.value)
    assert agent.spawned_repos == {}
    assert len(agent.memory) == memory_before
    assert agent.quantum_field.get_mounted_tensors() == mounts_before


class ShortSpawnEmbedder(HashEmbedder):
    """Returns a truncated vector for spawn self-model text only."""

    def embed(self, text):
        vector = super().embed(text)
        return vector[:10] if text.startswith("spawned:") else vector


def test_spawn_with_bad_embedding_changes_nothing():
    config = PersonaAgentConfig(traits=_traits(), field_config=TensorFieldConfig(seed=0))
    agent = PersonaAgent(config, embedder=ShortSpawnEmbedder())

    with pytest.raises(ValueError):
        agent.spawn_repository(RepoSpawnRequest(intent="Todo App"))

    assert agent.spawned_repos == {}
    assert len(agent.memory) == 0
    assert agent.memory.semantic_graph == {}


def test_spawn_below_ceiling_allowed(agent):
    result = agent.spawn_repository(
        RepoSpawnRequest(intent="nested", recursion_level=2, parent_repo="repo_x")
    )
    assert result.repo_id in agent.spawned_repos


def test_concurrent_spawns_unique_ids(agent):
    results = []
    lock = threading.Lock()

    def spawn(i):
        r = agent.spawn_repository(RepoSpawnRequest(intent=f"repo {i}"))
        with lock:
            results.append(r.repo_id)

    threads = [threading.Thread(target=spawn, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(results)) == 16
    assert len(agent.spawned_repos) == 16


def test_concurrent_cycles_serialized(agent):
    errors = []

    def run(i):
        try:
            agent.process_intent(f"message {i}", context=[f"ctx {i}"])
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert agent.get_persona_state()["cycles"] == 8
    assert agent.adaptation.steps == 8


# ── Retrieval / introspection ───────────────────────────────────────────────


def test_retrieve_context(agent):
    agent.process_intent("hello", context=["quantum tensors"])

    result = agent.retrieve_from_rag("quantum tensors")

    assert result.results[0].content == "quantum tensors"
    assert result.results[0].source == "conversation-context"
    assert result.results[0].relevance == pytest.approx(1.0, abs=1e-5)


def test_retrieve_spawned_repo(agent):
    result = agent.spawn_repository(RepoSpawnRequest(intent="Weather dashboard"))

    hits = agent.retrieve_from_rag("Weather dashboard").results

    assert hits[0].content == f"repo:{result.repo_id}"
    assert hits[0].source == "spawned-repository"


def test_retrieve_respects_max_results(agent):
    for i in range(4):
        agent.spawn_repository(RepoSpawnRequest(intent="same intent"))
    assert len(agent.retrieve_from_rag("same intent", max_results=2).results) == 2


def test_self_modification(agent):
    report = agent.perform_self_modification()

    assert report.composite == pytest.approx(0.895)
    assert agent.traits.adaptation_rate == pytest.approx(0.11)
    assert agent.introspect()["adaptation_steps"] == 1


def test_introspect(agent):
    agent.spawn_repository(RepoSpawnRequest(intent="a"))
    data = agent.introspect()

    assert data["cognitive_health"] == "operational"
    assert data["recursive_capability"] == "active"
    assert data["bolt_integration"] == "enabled"
    assert len(data["spawned_repos"]) == 1
    assert data["memory"]["size"] == 2
    assert data["tensor_field"]["mounted"] == len(DEFAULT_PERSONA_MOUNTS)
    assert data["self_model"]["id"] == agent.persona_tensors["/persona/self/meta"].id
