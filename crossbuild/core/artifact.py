# SPDX-License-Identifier: MIT
"""Artifacts produced by builds and the registry that collects them.

The registry is shared by every target build of a release run. Builds
only ever append to it; downstream packaging stages read it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from crossbuild.core.target import Target


class ArtifactType(Enum):
    BINARY = "binary"


@dataclass(frozen=True)
class Artifact:
    """Descriptor of one produced build output.

    Attributes:
        name: Logical name (binary name plus extension).
        path: Filesystem path of the output.
        goos: Target OS.
        goarch: Target architecture.
        goarm: ARM revision, or "".
        gomips: MIPS float mode, or "".
        type: Artifact kind.
        extra: Additional data; binaries carry Ext, Binary and ID.
    """

    name: str
    path: Path
    goos: str = ""
    goarch: str = ""
    goarm: str = ""
    gomips: str = ""
    type: ArtifactType = ArtifactType.BINARY
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if not isinstance(self.extra, MappingProxyType):
            object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def target(self) -> str:
        """Canonical target string of this artifact."""
        return str(Target(self.goos, self.goarch, arm=self.goarm, mips=self.gomips))


class ArtifactRegistry:
    """Append-only, thread-safe collection of artifacts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Artifact] = []

    def append(self, artifact: Artifact) -> None:
        """Add an artifact. Safe to call from concurrent builds."""
        with self._lock:
            self._items.append(artifact)

    def list(self) -> list[Artifact]:
        """Return a snapshot of all registered artifacts."""
        with self._lock:
            return list(self._items)

    def filter(self, type: ArtifactType) -> list[Artifact]:
        """Return the registered artifacts of one type."""
        return [a for a in self.list() if a.type is type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.list())

    def __repr__(self) -> str:
        return f"ArtifactRegistry({len(self)} artifacts)"
