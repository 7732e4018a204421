# SPDX-License-Identifier: MIT
"""Build specifications and per-target build options."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from crossbuild.core.errors import ConfigError

# Fields holding lists of strings; stored as tuples so specs stay immutable
_LIST_FIELDS = (
    "targets",
    "goos",
    "goarch",
    "goarm",
    "gomips",
    "flags",
    "ldflags",
    "gcflags",
    "asmflags",
    "env",
)


@dataclass(frozen=True)
class BuildSpec:
    """Description of one binary to build for many targets.

    Attributes:
        id: Build identifier, recorded on every artifact.
        binary: Binary name template (may contain a directory part).
        dir: Source directory; the compiler runs from here.
        main: Main entry selector: "" or "." scans ``dir``, a file name
            selects that file, a glob selects the matching files.
        targets: Explicit canonical target strings. When given, the
            dimension lists are ignored.
        goos: OS list for the target matrix.
        goarch: Architecture list for the target matrix.
        goarm: ARM revisions for arm targets.
        gomips: MIPS float modes for MIPS family targets.
        flags: Generic compiler flag templates.
        ldflags: Linker flag templates, joined into one -ldflags argument.
        gcflags: Compiler flag templates, each prefixed with -gcflags=.
        asmflags: Assembler flag templates, each prefixed with -asmflags=.
        env: Environment overlay, "KEY=VALUE" entries with template values.
        compiler: Compiler executable name or path.
        mod_timestamp: Template rendering to a Unix timestamp; when set,
            produced binaries get this modification time.
    """

    id: str = ""
    binary: str = ""
    dir: str = "."
    main: str = ""
    targets: tuple[str, ...] = ()
    goos: tuple[str, ...] = ()
    goarch: tuple[str, ...] = ()
    goarm: tuple[str, ...] = ()
    gomips: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()
    ldflags: tuple[str, ...] = ()
    gcflags: tuple[str, ...] = ()
    asmflags: tuple[str, ...] = ()
    env: tuple[str, ...] = ()
    compiler: str = ""
    mod_timestamp: str = ""

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                raise ConfigError(f"build field '{name}' must be a list of strings")
            object.__setattr__(self, name, tuple(value))
        object.__setattr__(self, "dir", str(self.dir))

    @property
    def build_id(self) -> str:
        """Identifier used in error messages: the id, else the binary name."""
        return self.id or self.binary

    def env_templates(self) -> list[tuple[str, str]]:
        """Split the environment overlay into (key, value template) pairs.

        Raises:
            ConfigError: If an entry has no "=".
        """
        pairs: list[tuple[str, str]] = []
        for entry in self.env:
            key, sep, value = entry.partition("=")
            if not sep or not key:
                raise ConfigError(f"invalid env entry '{entry}': expected KEY=VALUE")
            pairs.append((key, value))
        return pairs

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BuildSpec:
        """Create a BuildSpec from a configuration mapping.

        ``env`` may be given as a list of "KEY=VALUE" strings or as a table.

        Raises:
            ConfigError: On unknown keys or values of the wrong type.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown build field(s): {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "env" and isinstance(value, Mapping):
                value = [f"{k}={v}" for k, v in value.items()]
            if key in _LIST_FIELDS:
                if not isinstance(value, (list, tuple)) or not all(
                    isinstance(v, str) for v in value
                ):
                    raise ConfigError(
                        f"build field '{key}' must be a list of strings"
                    )
            elif key == "mod_timestamp" and isinstance(value, int):
                value = str(value)
            elif not isinstance(value, str):
                raise ConfigError(f"build field '{key}' must be a string")
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class BuildOptions:
    """Per-target invocation options.

    Attributes:
        target: Canonical target string.
        name: Artifact name (binary name plus extension).
        path: Output path of the binary.
        ext: File extension, including the dot.
    """

    target: str
    name: str = ""
    path: Path = Path()
    ext: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
