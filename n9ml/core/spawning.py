# ═══════════════════════════════════════════════════════════════════════════════
# PART 6: REPOSITORY SPAWNING
# ═══════════════════════════════════════════════════════════════════════════════

"""
Spawn requests and the records a successful spawn produces.

Everything here is pure: the artifact bundle is derived from the request
alone, and the memory extension only holds the embedding it is handed.
Registry bookkeeping and the recursion check live in the persona agent.
"""

from __future__ import annotations

import json
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

import numpy as np


class RepoArchitecture(Enum):
    """Shape of a spawned repository."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"
    AI_AGENT = "ai-agent"


@dataclass(frozen=True)
class RepoSpawnRequest:
    """Request to spawn a derived repository."""
    intent: str
    technologies: Tuple[str, ...] = ()
    architecture: RepoArchitecture = RepoArchitecture.FRONTEND
    recursion_level: int = 0
    parent_repo: Optional[str] = None

    def __post_init__(self) -> None:
        if self.recursion_level < 0:
            raise ValueError(f"recursion_level must be >= 0, got {self.recursion_level}")
        # Ordered set
        object.__setattr__(
            self, "technologies", tuple(dict.fromkeys(self.technologies))
        )


@dataclass(frozen=True)
class ArtifactFile:
    path: str
    content: str


@dataclass
class ArtifactBundle:
    """Files describing a spawned repository."""
    id: str
    title: str
    files: List[ArtifactFile] = field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    def get(self, path: str) -> Optional[ArtifactFile]:
        for f in self.files:
            if f.path == path:
                return f
        return None


@dataclass
class ChatLog:
    """Per-repository message log."""
    repo_id: str
    messages: List[Dict[str, str]] = field(default_factory=list)

    def add_message(self, content: str, role: str = "user") -> None:
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown role: {role}")
        self.messages.append({
            "content": content,
            "role": role,
            "timestamp": datetime.now().isoformat(),
        })

    def history(self) -> List[Dict[str, str]]:
        return list(self.messages)


@dataclass
class MemoryExtension:
    """Memory scope attached to a spawned repository."""
    repo_id: str
    embeddings: Dict[str, np.ndarray] = field(default_factory=dict)
    knowledge_graph: Dict[str, Set[str]] = field(default_factory=dict)
    chat: Optional[ChatLog] = None


@dataclass
class SpawnResult:
    repo_id: str
    artifact_bundle: ArtifactBundle
    memory_extension: MemoryExtension


# ── Builders ─────────────────────────────────────────────────────────────────

# Technology -> package manifest dependencies
_DEPENDENCIES: Dict[str, Dict[str, str]] = {
    "react": {"react": "^18.0.0", "react-dom": "^18.0.0"},
    "express": {"express": "^4.18.0"},
    "pytorch": {"@tensorflow/tfjs": "^4.0.0"},
}

_ENTRY_FILES: Dict[RepoArchitecture, Tuple[str, ...]] = {
    RepoArchitecture.FRONTEND: ("src/App.tsx",),
    RepoArchitecture.BACKEND: ("src/server.ts",),
    RepoArchitecture.FULLSTACK: ("src/App.tsx", "src/server.ts"),
    RepoArchitecture.AI_AGENT: ("src/agent.ts",),
}


def generate_repo_id() -> str:
    """repo_<epoch ms>_<random token>"""
    return f"repo_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _slug(text: str, limit: int = 48) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:limit].rstrip("-") or "repository"


def build_manifest(request: RepoSpawnRequest) -> str:
    dependencies: Dict[str, str] = {}
    for tech in request.technologies:
        dependencies.update(_DEPENDENCIES.get(tech, {}))

    return json.dumps({
        "name": f"spawned-{_slug(request.intent)}",
        "version": "1.0.0",
        "description": request.intent,
        "main": "index.js",
        "scripts": {"dev": "vite", "build": "vite build", "test": "vitest"},
        "dependencies": dependencies,
        "devDependencies": {"vite": "^5.0.0", "typescript": "^5.0.0"},
    }, indent=2)


def build_readme(request: RepoSpawnRequest) -> str:
    lines = [
        "# Generated Repository",
        "",
        "## Intent",
        request.intent,
        "",
        "## Architecture",
        request.architecture.value,
        "",
        "## Technologies",
        ", ".join(request.technologies) or "(none)",
        "",
        "## Recursion Level",
        str(request.recursion_level),
    ]
    if request.parent_repo:
        lines += ["", "## Parent", request.parent_repo]
    return "\n".join(lines) + "\n"


def _entry_file(path: str, request: RepoSpawnRequest) -> str:
    return f"// {path}\n// Intent: {request.intent}\nexport {{}};\n"


def build_artifact_bundle(request: RepoSpawnRequest, repo_id: str) -> ArtifactBundle:
    """Manifest, readme and architecture entry files for a request."""
    files = [
        ArtifactFile("package.json", build_manifest(request)),
        ArtifactFile("README.md", build_readme(request)),
    ]
    files += [
        ArtifactFile(path, _entry_file(path, request))
        for path in _ENTRY_FILES[request.architecture]
    ]
    return ArtifactBundle(
        id=repo_id,
        title=f"Generated Repository: {request.intent}",
        files=files,
    )


def build_memory_extension(
    request: RepoSpawnRequest,
    repo_id: str,
    intent_embedding: np.ndarray,
) -> MemoryExtension:
    return MemoryExtension(
        repo_id=repo_id,
        embeddings={f"repo:{repo_id}:intent": intent_embedding},
        knowledge_graph={repo_id: {request.intent}},
        chat=ChatLog(repo_id),
    )


def infer_technologies(domain: str) -> Tuple[str, ...]:
    """Baseline stack plus domain additions."""
    technologies: List[str] = ["typescript", "node.js"]
    if domain == "development":
        technologies += ["react", "vite"]
    if domain == "ai":
        technologies += ["python", "pytorch", "transformers"]
    return tuple(technologies)


def infer_architecture(domain: str, task: str, complexity: int) -> RepoArchitecture:
    if domain == "ai":
        return RepoArchitecture.AI_AGENT
    if complexity > 7:
        return RepoArchitecture.FULLSTACK
    if "api" in task or "server" in task:
        return RepoArchitecture.BACKEND
    return RepoArchitecture.FRONTEND

