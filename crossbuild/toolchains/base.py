# SPDX-License-Identifier: MIT
"""Builder protocol and base implementation.

A Builder knows how to turn a BuildSpec into binaries with one external
toolchain: it fills in toolchain defaults and builds one target at a
time. Batch execution lives in crossbuild.core.runner.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from crossbuild.configure.config import Configure
from crossbuild.core.context import SubstRenderer

if TYPE_CHECKING:
    from crossbuild.core.artifact import Artifact, ArtifactRegistry
    from crossbuild.core.context import BuildMetadataContext, Renderer
    from crossbuild.core.spec import BuildOptions, BuildSpec


@runtime_checkable
class Builder(Protocol):
    """Protocol for builders."""

    renderer: Renderer

    @property
    def name(self) -> str:
        """Builder name (e.g., 'go')."""
        ...

    def with_defaults(self, spec: BuildSpec) -> BuildSpec:
        """Return a copy of ``spec`` with defaults applied and targets expanded."""
        ...

    def build(
        self,
        spec: BuildSpec,
        options: BuildOptions,
        context: BuildMetadataContext,
        registry: ArtifactRegistry,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Artifact:
        """Build one target and register the produced artifact."""
        ...


class BaseBuilder(ABC):
    """Abstract base class for builders.

    Holds the renderer used for all templates and the Configure context
    used to locate the compiler.
    """

    # Argument that makes the compiler print its version; None skips the check
    version_flag: str | None = None

    def __init__(
        self,
        name: str,
        *,
        renderer: Renderer | None = None,
        config: Configure | None = None,
    ) -> None:
        """Initialize a builder.

        Args:
            name: Builder name.
            renderer: Template renderer (default: SubstRenderer).
            config: Program discovery context (default: a new Configure).
        """
        self._name = name
        self.renderer: Renderer = renderer or SubstRenderer()
        self.config = config or Configure()
        self._lookup_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def program_hints(self) -> list[Path]:
        """Directories searched for the compiler before PATH."""
        return []

    def resolve_program(self, program: str) -> str:
        """Resolve a program name to a path, falling back to the name itself.

        An unresolved name is still returned, so a missing compiler shows up
        as a launch failure of the build rather than a lookup error. The
        compiler version is queried once with ``version_flag`` and logged.
        """
        with self._lookup_lock:
            info = self.config.find_program(
                program, hints=self.program_hints(), version_flag=self.version_flag
            )
        return str(info.path) if info else program

    @abstractmethod
    def with_defaults(self, spec: BuildSpec) -> BuildSpec: ...

    @abstractmethod
    def build(
        self,
        spec: BuildSpec,
        options: BuildOptions,
        context: BuildMetadataContext,
        registry: ArtifactRegistry,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Artifact: ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
