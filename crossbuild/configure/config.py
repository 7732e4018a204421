# SPDX-License-Identifier: MIT
"""Configuration for crossbuild.

Two concerns live here:
- Configure: program discovery (locating the compiler and its version).
- load_config: reading build specifications from a TOML file.

Example crossbuild.toml:

    project_name = "foo"
    dist = "dist"

    [[builds]]
    id = "foo"
    binary = "bin/foo-$Version"
    goos = ["linux", "darwin"]
    ldflags = ["-s -w -X main.version=$Version"]
    env = ["CGO_ENABLED=0"]
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from crossbuild.core.errors import ConfigError
from crossbuild.core.spec import BuildSpec

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "crossbuild.toml"
DEFAULT_DIST = "dist"


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
        version: Version string if detected.
    """

    path: Path
    version: str | None = None


class Configure:
    """Program discovery.

    Example:
        config = Configure()
        go = config.find_program("go", version_flag="version")
        if go:
            print(f"Found go at {go.path} ({go.version})")
    """

    def __init__(self) -> None:
        self._programs: dict[str, ProgramInfo] = {}

    def find_program(
        self,
        name: str,
        *,
        hints: list[Path | str] | None = None,
        version_flag: str | None = "--version",
    ) -> ProgramInfo | None:
        """Find a program on the system.

        Searches for the program in:
        1. Hint directories (if provided)
        2. PATH environment variable

        Args:
            name: Program name (e.g., 'go') or path.
            hints: Directories searched before PATH.
            version_flag: Argument that makes the program print its
                version; None skips version detection.

        Returns:
            ProgramInfo if found, None otherwise.
        """
        if name in self._programs:
            return self._programs[name]

        found_path: Path | None = None

        # Check hints first
        if hints:
            for hint in hints:
                candidate = Path(hint) / name
                if os.name == "nt" and not candidate.suffix:
                    candidate = candidate.with_suffix(".exe")
                if candidate.is_file() and os.access(candidate, os.X_OK):
                    found_path = candidate
                    break

        # Search PATH
        if found_path is None:
            found_path = self._which(name)

        if found_path is None:
            return None

        version = None
        if version_flag is not None:
            version = self._get_program_version(found_path, version_flag)

        info = ProgramInfo(path=found_path, version=version)
        self._programs[name] = info
        logger.debug("Found %s at %s (%s)", name, found_path, version or "unknown")
        return info

    def _which(self, name: str) -> Path | None:
        """Find a program in PATH using shutil.which."""
        result = shutil.which(name)
        if result:
            return Path(result)
        return None

    def _get_program_version(self, path: Path, version_flag: str) -> str | None:
        """Try to get the version of a program."""
        try:
            result = subprocess.run(
                [str(path), version_flag],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0:
                # Return first non-empty line
                for line in result.stdout.split("\n"):
                    line = line.strip()
                    if line:
                        return line
            return None
        except (subprocess.TimeoutExpired, OSError):
            return None

    def __repr__(self) -> str:
        return f"Configure(programs=[{', '.join(self._programs)}])"


@dataclass
class ProjectConfig:
    """Contents of a crossbuild configuration file.

    Attributes:
        project_name: Project name, exposed to templates as $ProjectName.
        dist: Output directory for built binaries.
        builds: Build specifications.
    """

    project_name: str = ""
    dist: Path = Path(DEFAULT_DIST)
    builds: list[BuildSpec] = field(default_factory=list)


def load_config(path: Path | str = DEFAULT_CONFIG_FILE) -> ProjectConfig:
    """Load a crossbuild configuration file.

    Args:
        path: Path to the TOML file.

    Returns:
        The parsed configuration.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ConfigError: If the file is not valid TOML or has invalid fields.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    return parse_config(data, source=str(path))


def parse_config(data: dict[str, Any], *, source: str = "<config>") -> ProjectConfig:
    """Build a ProjectConfig from already-parsed data.

    Raises:
        ConfigError: On unknown keys or invalid values.
    """
    unknown = sorted(set(data) - {"project_name", "dist", "builds"})
    if unknown:
        raise ConfigError(f"{source}: unknown key(s): {', '.join(unknown)}")

    project_name = data.get("project_name", "")
    if not isinstance(project_name, str):
        raise ConfigError(f"{source}: project_name must be a string")

    dist = data.get("dist", DEFAULT_DIST)
    if not isinstance(dist, str):
        raise ConfigError(f"{source}: dist must be a string")

    raw_builds = data.get("builds", [])
    if not isinstance(raw_builds, list):
        raise ConfigError(f"{source}: builds must be an array of tables")

    builds: list[BuildSpec] = []
    for index, raw in enumerate(raw_builds):
        if not isinstance(raw, dict):
            raise ConfigError(f"{source}: builds[{index}] must be a table")
        try:
            builds.append(BuildSpec.from_dict(raw))
        except ConfigError as e:
            raise ConfigError(f"{source}: builds[{index}]: {e.message}") from e

    ids = [b.id for b in builds if b.id]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigError(f"{source}: duplicate build id(s): {', '.join(duplicates)}")

    return ProjectConfig(project_name=project_name, dist=Path(dist), builds=builds)


def default_jobs() -> int:
    """Default number of parallel builds.

    Uses CROSSBUILD_JOBS when set, otherwise the CPU count.
    """
    value = os.environ.get("CROSSBUILD_JOBS")
    if value:
        try:
            jobs = int(value)
        except ValueError as e:
            raise ConfigError(
                f"CROSSBUILD_JOBS must be an integer, got '{value}'"
            ) from e
        if jobs < 1:
            raise ConfigError(f"CROSSBUILD_JOBS must be at least 1, got {jobs}")
        return jobs
    return os.cpu_count() or 1
