#!/usr/bin/env python3
"""
Interactive session with an n9ml persona agent.

Usage:
    # Default persona, synthetic random embeddings:
    python chat.py

    # Reproducible embeddings (same text -> same vector):
    python chat.py --deterministic

    # Tune traits:
    python chat.py --creativity 0.9 --precision 0.4 --recursion-depth 2

    # Disable repository spawning:
    python chat.py --no-bolt

    # Show persona state after each turn:
    python chat.py --show-state
"""

import argparse
import logging

from n9ml.core.adaptation import PersonaTraits
from n9ml.core.embedding import HashEmbedder, RandomEmbedder
from n9ml.core.errors import N9mlError
from n9ml.core.persona_agent import create_agent
from n9ml.core.spawning import RepoArchitecture, RepoSpawnRequest


def format_state(agent):
    """Format persona state for display."""
    state = agent.get_persona_state()
    traits = state["traits"]
    return "\n".join([
        f"  Creativity: {traits['creativity']:.3f}",
        f"  Precision: {traits['precision']:.3f}",
        f"  Adaptation rate: {traits['adaptation_rate']:.4f}",
        f"  Recursion depth: {traits['recursion_depth']}",
        f"  Memory: {state['memory_size']} embeddings",
        f"  Spawned repos: {state['spawned_repo_count']}",
        f"  Tensor mounts: {state['tensor_mounts']}",
    ])


def format_tensor(path, tensor):
    return (
        f"  {path}: {tensor.id}\n"
        f"    {tensor.architecture.kind.value} x{tensor.architecture.layers} "
        f"({tensor.architecture.optimization.value}), "
        f"{tensor.quantization.bits}-bit {tensor.quantization.method.value}, "
        f"dtype={tensor.dtype.value} shape={list(tensor.shape)}"
    )


def format_introspection(data):
    lines = [
        f"  Health: {data['cognitive_health']}",
        f"  Recursive capability: {data['recursive_capability']}",
        f"  Bolt integration: {data['bolt_integration']}",
        f"  Adaptation steps: {data['adaptation_steps']}",
        f"  Memory: {data['memory']['size']} entries, "
        f"window {data['memory']['window_length']}, "
        f"{data['memory']['graph_nodes']} graph nodes",
        f"  Mounted tensors: {data['tensor_field']['mounted']}",
    ]
    if data["spawned_repos"]:
        lines.append(f"  Repos: {', '.join(data['spawned_repos'])}")
    return "\n".join(lines)


HELP_TEXT = """
Commands:
  /help                      Show this help
  /state                     Persona traits and counters
  /introspect                Full self-report

  /mount <path>              Mount a tensor at a namespace path
  /remount <src> <path>      Reinterpret the tensor at <src> for <path>
  /unmount <path>            Remove a mounted tensor
  /mounts                    List mounted tensors
  /states                    Show the quantum-state catalog

  /retrieve <query>          Similarity search over memory
  /spawn <intent>            Spawn a frontend repository directly
  /adapt                     Run one self-modification step

  quit, exit                 End session
""".strip()


def handle_command(user_input, agent):
    """
    Run a slash command.

    Returns the text to print, or None if user_input is not a command.
    """
    if not user_input.startswith("/"):
        return None

    parts = user_input.split()
    cmd = parts[0].lower()
    args = parts[1:]

    try:
        if cmd == "/help":
            return HELP_TEXT

        if cmd == "/state":
            return f"[Persona State]\n{format_state(agent)}"

        if cmd == "/introspect":
            return f"[Introspection]\n{format_introspection(agent.introspect())}"

        if cmd == "/mount":
            if len(args) != 1:
                return "Usage: /mount <path>"
            tensor = agent.quantum_field.mount(args[0])
            return f"[Mounted]\n{format_tensor(args[0], tensor)}"

        if cmd == "/remount":
            if len(args) != 2:
                return "Usage: /remount <src> <path>"
            source = agent.quantum_field.get_mounted_tensors().get(args[0])
            if source is None:
                return f"Nothing mounted at {args[0]}"
            tensor = agent.quantum_field.remount(source, args[1])
            return f"[Remounted]\n{format_tensor(args[1], tensor)}"

        if cmd == "/unmount":
            if len(args) != 1:
                return "Usage: /unmount <path>"
            removed = agent.quantum_field.unmount(args[0])
            return f"[{'Unmounted' if removed else 'Not mounted'}] {args[0]}"

        if cmd == "/mounts":
            mounted = agent.quantum_field.get_mounted_tensors()
            if not mounted:
                return "[No tensors mounted]"
            lines = [f"[Mounted tensors] ({len(mounted)})"]
            lines += [format_tensor(p, t) for p, t in sorted(mounted.items())]
            return "\n".join(lines)

        if cmd == "/states":
            lines = ["[Quantum states]"]
            for domain, states in agent.quantum_field.get_quantum_states().items():
                lines.append(f"  {domain}:")
                for s in states:
                    lines.append(
                        f"    p={s.probability:.2f} {s.architecture.kind.value} "
                        f"x{s.architecture.layers}, {s.quantization.bits}-bit "
                        f"{s.quantization.method.value}"
                    )
            return "\n".join(lines)

        if cmd == "/retrieve":
            if not args:
                return "Usage: /retrieve <query>"
            result = agent.retrieve_from_rag(" ".join(args))
            if not result.results:
                return "[No matches above threshold]"
            lines = [f"[Matches] ({len(result.results)})"]
            lines += [
                f"  {r.relevance:.3f} [{r.source}] {r.content}" for r in result.results
            ]
            return "\n".join(lines)

        if cmd == "/spawn":
            if not args:
                return "Usage: /spawn <intent>"
            result = agent.spawn_repository(RepoSpawnRequest(
                intent=" ".join(args),
                technologies=("typescript", "node.js"),
                architecture=RepoArchitecture.FRONTEND,
            ))
            return (
                f"[Spawned {result.repo_id}]\n"
                f"  Files: {', '.join(result.artifact_bundle.paths)}"
            )

        if cmd == "/adapt":
            report = agent.perform_self_modification()
            changes = ", ".join(
                f"{k}={v}" for k, v in report.trait_adaptations.items()
            ) or "none"
            return (
                f"[Self-modification]\n"
                f"  Composite: {report.composite:.3f}\n"
                f"  Adaptation rate: {report.adaptation_rate:.4f}\n"
                f"  Trait changes: {changes}\n"
                f"  Reshape: semantic_dim={report.reshape.semantic_dim} "
                f"activation={report.reshape.activation_level}"
            )

    except N9mlError as e:
        return f"Error: {e}"

    return f"Unknown command: {cmd}\nType /help for available commands."


def main():
    parser = argparse.ArgumentParser(description="Chat with an n9ml persona agent")
    parser.add_argument("--name", default="n9ml", help="Persona name (default: n9ml)")
    parser.add_argument("--creativity", type=float, default=0.8)
    parser.add_argument("--precision", type=float, default=0.9)
    parser.add_argument("--recursion-depth", type=int, default=3)
    parser.add_argument("--no-bolt", action="store_true", help="Disable repository spawning")
    parser.add_argument("--deterministic", action="store_true", help="Hash-seeded embeddings")
    parser.add_argument("--show-state", action="store_true", help="Show persona state")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s > %(message)s",
    )

    traits = PersonaTraits(
        creativity=args.creativity,
        precision=args.precision,
        recursion_depth=args.recursion_depth,
        bolt_integration=not args.no_bolt,
    )
    embedder = HashEmbedder() if args.deterministic else RandomEmbedder()
    agent = create_agent(args.name, traits=traits, embedder=embedder)

    print(f"\n{'=' * 60}")
    print(f"  {agent.name} is online.")
    print(f"  Persona tensors: {len(agent.persona_tensors)}")
    print(f"{'=' * 60}")
    print("  Type /help for commands, or just chat.")
    print(f"{'=' * 60}\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\n\nGoodbye.")
            break

        if not user_input:
            continue

        if user_input.lower() in ("quit", "exit"):
            print("\nGoodbye.")
            break

        output = handle_command(user_input, agent)
        if output is not None:
            print(f"\n{output}\n")
            continue

        # The turn text is also stored as context for later retrieval
        result = agent.process_intent(user_input, context=[user_input])
        print(f"\n{agent.name}: {result.response}\n")

        if args.show_state:
            print(f"[State]\n{format_state(agent)}\n")


if __name__ == "__main__":
    main()
