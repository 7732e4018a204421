# SPDX-License-Identifier: MIT
"""Metadata context for template rendering.

A BuildMetadataContext is a read-only snapshot of the facts available to
flag and name templates: version control information, build date, the
caller's environment, and (for artifact-scoped renders) the current
target and binary name.

The version/tag/commit/date fields are shared by every target of a run;
``with_artifact()`` derives a per-target context without touching the
original.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from crossbuild.core.subst import Namespace, render

if TYPE_CHECKING:
    from crossbuild.core.artifact import Artifact


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_date(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class BuildMetadataContext:
    """Typed template context.

    Attributes:
        project_name: Name of the project being released.
        version: Version string (usually the tag without a leading "v").
        tag: Current git tag.
        commit: Full commit hash.
        commit_date: Commit timestamp.
        date: Build timestamp.
        env: Free-form environment mapping, exposed as $Env.KEY.
        os: Target OS, only for artifact-scoped renders.
        arch: Target architecture, only for artifact-scoped renders.
        arm: ARM revision, only for artifact-scoped renders.
        mips: MIPS float mode, only for artifact-scoped renders.
        binary: Binary name without extension.
        artifact_name: Artifact name, including extension.
    """

    project_name: str = ""
    version: str = ""
    tag: str = ""
    commit: str = ""
    commit_date: datetime | None = None
    date: datetime = field(default_factory=_utcnow)
    env: Mapping[str, str] = field(default_factory=dict)
    os: str | None = None
    arch: str | None = None
    arm: str | None = None
    mips: str | None = None
    binary: str | None = None
    artifact_name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.env, MappingProxyType):
            object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def with_artifact(self, artifact: Artifact) -> BuildMetadataContext:
        """Return a copy scoped to one artifact's target and names."""
        return replace(
            self,
            os=artifact.goos,
            arch=artifact.goarch,
            arm=artifact.goarm,
            mips=artifact.gomips,
            binary=str(artifact.extra.get("Binary", "")),
            artifact_name=artifact.name,
        )

    def as_namespace(self) -> Namespace:
        """Build the Namespace used by the substitution engine.

        Artifact-scoped keys are only present when set, so referencing
        them from a run-wide template is an undefined-variable error.
        """
        commit_date = self.commit_date or self.date
        data: dict[str, Any] = {
            "ProjectName": self.project_name,
            "Version": self.version,
            "Tag": self.tag,
            "Commit": self.commit,
            "ShortCommit": self.commit[:7],
            "Date": _format_date(self.date),
            "Timestamp": int(self.date.timestamp()),
            "CommitDate": _format_date(commit_date),
            "CommitTimestamp": int(commit_date.timestamp()),
            "Env": self.env,
        }
        scoped = {
            "Os": self.os,
            "Arch": self.arch,
            "Arm": self.arm,
            "Mips": self.mips,
            "Binary": self.binary,
            "ArtifactName": self.artifact_name,
        }
        data.update({key: value for key, value in scoped.items() if value is not None})
        return Namespace(data)


@runtime_checkable
class Renderer(Protocol):
    """Capability for rendering a template against a metadata context."""

    def render(self, template: str, context: BuildMetadataContext) -> str:
        """Render ``template`` or raise TemplateError."""
        ...


class SubstRenderer:
    """Renderer backed by crossbuild.core.subst."""

    def render(self, template: str, context: BuildMetadataContext) -> str:
        return render(template, context.as_namespace())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
