# SPDX-License-Identifier: MIT
"""
crossbuild: cross-compilation target matrix resolver and build engine.

crossbuild expands a build specification into concrete OS/architecture
targets, renders per-target compiler flags from templates, invokes the
compiler once per target and registers the produced binaries as artifacts
for later packaging stages.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from crossbuild.core.artifact import Artifact, ArtifactRegistry  # noqa: E402
from crossbuild.core.context import BuildMetadataContext  # noqa: E402
from crossbuild.core.runner import BuildRunner  # noqa: E402
from crossbuild.core.spec import BuildOptions, BuildSpec  # noqa: E402
from crossbuild.core.target import Target  # noqa: E402
from crossbuild.toolchains.go import GoBuilder  # noqa: E402

# Public API exports
__all__ = [
    # Version
    "__version__",
    # Core classes
    "Artifact",
    "ArtifactRegistry",
    "BuildMetadataContext",
    "BuildOptions",
    "BuildRunner",
    "BuildSpec",
    "Target",
    # Builders
    "GoBuilder",
]
