# SPDX-License-Identifier: MIT
"""Run a build spec across its whole target matrix.

The runner expands the targets once, derives the output name and path of
every target, and hands each one to the builder on a bounded thread pool.
A failing target never stops the others unless ``fail_fast`` is set, in
which case in-flight compilers are killed and pending targets are
reported as cancelled.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from crossbuild.core.artifact import ArtifactRegistry
from crossbuild.core.errors import CrossbuildError
from crossbuild.core.spec import BuildOptions
from crossbuild.core.target import Target

if TYPE_CHECKING:
    from crossbuild.core.artifact import Artifact
    from crossbuild.core.context import BuildMetadataContext
    from crossbuild.core.spec import BuildSpec
    from crossbuild.toolchains.base import Builder

logger = logging.getLogger(__name__)

# Binary file extensions by target OS
EXTENSIONS: dict[str, str] = {
    "windows": ".exe",
    "js": ".wasm",
}


def extension_for(target: Target) -> str:
    """File extension of binaries built for ``target``."""
    return EXTENSIONS.get(target.os, "")


@dataclass
class TargetResult:
    """Outcome of one target build.

    Attributes:
        target: Canonical target string.
        artifact: The registered artifact, on success.
        error: The error that stopped the build, on failure.
    """

    target: str
    artifact: Artifact | None = None
    error: CrossbuildError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BuildRunner:
    """Builds every target of a spec with bounded parallelism.

    Example:
        runner = BuildRunner(GoBuilder(), dist=Path("dist"), jobs=4)
        results = runner.run(spec, context)
        failed = [r for r in results if not r.ok]
    """

    def __init__(
        self,
        builder: Builder,
        registry: ArtifactRegistry | None = None,
        *,
        dist: Path | str = "dist",
        jobs: int = 1,
        timeout: float | None = None,
        fail_fast: bool = False,
    ) -> None:
        """Create a runner.

        Args:
            builder: Builder used for every target.
            registry: Registry shared by all targets (default: a new one).
            dist: Output directory.
            jobs: Maximum number of concurrent compiler invocations.
            timeout: Per-target compiler timeout in seconds.
            fail_fast: Cancel remaining targets after the first failure.
        """
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self.builder = builder
        self.registry = registry if registry is not None else ArtifactRegistry()
        self.dist = Path(dist)
        self.jobs = jobs
        self.timeout = timeout
        self.fail_fast = fail_fast

    def options_for(
        self,
        spec: BuildSpec,
        target: Target,
        context: BuildMetadataContext,
    ) -> BuildOptions:
        """Compute artifact name and output path for one target.

        The binary name template is rendered against the run-wide context.

        Raises:
            TemplateError: If the binary name template fails to render.
        """
        ext = extension_for(target)
        name = self.builder.renderer.render(spec.binary, context) + ext
        folder = f"{spec.id}_{target}" if spec.id else str(target)
        return BuildOptions(
            target=str(target),
            name=name,
            path=self.dist / folder / name,
            ext=ext,
        )

    def run(
        self,
        spec: BuildSpec,
        context: BuildMetadataContext,
    ) -> list[TargetResult]:
        """Build all targets of ``spec``.

        Returns:
            One result per target, in target order.

        Raises:
            InvalidTargetError: If the target list cannot be resolved; no
                target is attempted then.
        """
        spec = self.builder.with_defaults(spec)
        targets = [Target.parse(t) for t in spec.targets]
        logger.info(
            "Building %s for %d target(s) with %d job(s)",
            spec.build_id,
            len(targets),
            self.jobs,
        )

        cancel = threading.Event()
        results: dict[str, TargetResult] = {}
        with ThreadPoolExecutor(max_workers=self.jobs) as executor:
            futures = {
                executor.submit(self._build_one, spec, target, context, cancel): target
                for target in targets
            }
            for future in as_completed(futures):
                result = future.result()
                results[result.target] = result
                if not result.ok and self.fail_fast and not cancel.is_set():
                    logger.info("Cancelling remaining targets of %s", spec.build_id)
                    cancel.set()

        return [results[str(t)] for t in targets]

    def _build_one(
        self,
        spec: BuildSpec,
        target: Target,
        context: BuildMetadataContext,
        cancel: threading.Event,
    ) -> TargetResult:
        try:
            options = self.options_for(spec, target, context)
            artifact = self.builder.build(
                spec,
                options,
                context,
                self.registry,
                timeout=self.timeout,
                cancel=cancel,
            )
        except CrossbuildError as e:
            logger.error("Build of %s for %s failed: %s", spec.build_id, target, e)
            return TargetResult(str(target), error=e)
        return TargetResult(str(target), artifact=artifact)
