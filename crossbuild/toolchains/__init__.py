# SPDX-License-Identifier: MIT
"""Builder definitions (Go)."""

from crossbuild.toolchains.base import BaseBuilder, Builder
from crossbuild.toolchains.go import GoBuilder

__all__ = [
    "BaseBuilder",
    "Builder",
    "GoBuilder",
]
