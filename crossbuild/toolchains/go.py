# SPDX-License-Identifier: MIT
"""Go toolchain builder.

Builds one binary per target with ``go build``. Each invocation goes
through these steps:

1. Resolve the main entry: find a ``package main`` file that declares
   ``func main()`` in the selected source.
2. Render flag, environment and timestamp templates for the target.
3. Run the compiler with an environment snapshot private to this
   invocation (GOOS, GOARCH, GOARM, GOMIPS set per target).
4. Optionally set the output's modification time, then register the
   artifact.

Any failure raises and nothing is registered for that target.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
import time
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from crossbuild.core import matrix
from crossbuild.core.artifact import Artifact, ArtifactType
from crossbuild.core.errors import (
    BuildCancelledError,
    BuildIOError,
    CompilerFailedError,
    MainFileNotFoundError,
    NoMainFunctionError,
)
from crossbuild.core.flags import (
    ASMFLAGS_MARKER,
    GCFLAGS_MARKER,
    join_ldflags,
    process_flags,
)
from crossbuild.core.subst import to_shell_command
from crossbuild.core.target import Target
from crossbuild.toolchains.base import BaseBuilder
from crossbuild.util.timestamps import parse_timestamp, set_mod_time

if TYPE_CHECKING:
    from crossbuild.configure.config import Configure
    from crossbuild.core.artifact import ArtifactRegistry
    from crossbuild.core.context import BuildMetadataContext, Renderer
    from crossbuild.core.spec import BuildOptions, BuildSpec

logger = logging.getLogger(__name__)

DEFAULT_COMPILER = "go"

# How often a running compiler is checked for cancellation, in seconds
POLL_INTERVAL = 0.1

# Variables describing the target; stale values from the caller are removed
TARGET_ENV_VARS = ("GOOS", "GOARCH", "GOARM", "GOMIPS", "GOMIPS64")

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.S)
_LINE_COMMENT = re.compile(r"//[^\n]*")
_PACKAGE_MAIN = re.compile(r"^\s*package\s+main\s*(;|$)", re.M)
_FUNC_MAIN = re.compile(r"^\s*func\s+main\s*\(\s*\)", re.M)


def declares_main(source: str) -> bool:
    """Check whether Go source declares ``package main`` with ``func main()``."""
    code = _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", source))
    return bool(_PACKAGE_MAIN.search(code) and _FUNC_MAIN.search(code))


def _go_files(directory: Path) -> list[Path]:
    """Non-test Go files directly inside ``directory``, sorted by name."""
    return sorted(
        p
        for p in directory.glob("*.go")
        if p.is_file() and not p.name.endswith("_test.go")
    )


def resolve_main(spec: BuildSpec) -> list[str]:
    """Locate the main entry point of a build.

    Args:
        spec: Build specification; ``main`` is interpreted relative to
            ``dir``.

    Returns:
        The package/file arguments to hand to the compiler.

    Raises:
        MainFileNotFoundError: If an explicit main file does not exist.
        NoMainFunctionError: If no selected file declares a main function.
        BuildIOError: If a candidate file cannot be read.
    """
    root = Path(spec.dir)
    main = spec.main
    args = [main or "."]

    if main in ("", "."):
        candidates = _go_files(root)
    elif any(c in main for c in "*?["):
        candidates = sorted(p for p in root.glob(main) if p.is_file())
        args = [str(p.relative_to(root)) for p in candidates]
    else:
        path = root / main
        try:
            path.stat()
        except OSError as e:
            reason = (e.strerror or str(e)).lower()
            raise MainFileNotFoundError(str(path), reason) from e
        candidates = _go_files(path) if path.is_dir() else [path]

    for candidate in candidates:
        try:
            source = candidate.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise BuildIOError("read", str(candidate), e.strerror or str(e)) from e
        if declares_main(source):
            logger.debug("Main function found in %s", candidate)
            return args
    raise NoMainFunctionError(spec.build_id)


def target_environment(target: Target) -> dict[str, str]:
    """Toolchain variables selecting ``target``."""
    env = {"GOOS": target.os, "GOARCH": target.arch}
    if target.arm:
        env["GOARM"] = target.arm
    if target.mips:
        key = "GOMIPS64" if target.arch.startswith("mips64") else "GOMIPS"
        env[key] = target.mips
    return env


class GoBuilder(BaseBuilder):
    """Cross-compiles Go programs.

    Variables rendered per target:
        flags: generic flags, passed as-is
        asmflags: each prefixed with -asmflags=
        gcflags: each prefixed with -gcflags=
        ldflags: joined into a single -ldflags= argument
        env: overlay values
        mod_timestamp: Unix timestamp applied to the output
    """

    version_flag = "version"

    def __init__(
        self,
        *,
        renderer: Renderer | None = None,
        config: Configure | None = None,
    ) -> None:
        super().__init__("go", renderer=renderer, config=config)

    def program_hints(self) -> list[Path]:
        """The toolchain of $GOROOT, when set, wins over PATH."""
        goroot = os.environ.get("GOROOT")
        return [Path(goroot) / "bin"] if goroot else []

    def with_defaults(self, spec: BuildSpec) -> BuildSpec:
        """Fill in the compiler and the resolved target list.

        Raises:
            InvalidTargetError: If a target or dimension token is invalid.
        """
        targets = matrix.expand(
            spec.targets, spec.goos, spec.goarch, spec.goarm, spec.gomips
        )
        return replace(
            spec,
            compiler=spec.compiler or DEFAULT_COMPILER,
            targets=tuple(str(t) for t in targets),
        )

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
        """Build one target.

        Args:
            spec: Build specification.
            options: Target, artifact name and output path.
            context: Run-wide metadata context.
            registry: Registry the artifact is appended to on success.
            timeout: Seconds the compiler may run before it is killed.
            cancel: Event that, once set, aborts the build.

        Returns:
            The registered artifact.

        Raises:
            InvalidTargetError: Bad target string.
            MainFileNotFoundError, NoMainFunctionError: Bad source tree.
            TemplateError: A template failed to render.
            CompilerFailedError: The compiler failed or could not start.
            BuildCancelledError: Cancelled or timed out.
            TimestampError: The output's times could not be set.
            BuildIOError: A source file or the output directory is unusable.
        """
        target = Target.parse(options.target)
        main_args = resolve_main(spec)

        artifact = Artifact(
            name=options.name,
            path=options.path,
            goos=target.os,
            goarch=target.arch,
            goarm=target.arm,
            gomips=target.mips,
            type=ArtifactType.BINARY,
            extra={
                "Ext": options.ext,
                "Binary": options.path.name.removesuffix(options.ext)
                if options.ext
                else options.path.name,
                "ID": spec.id,
            },
        )
        ctx = context.with_artifact(artifact)

        overlay = {
            key: self.renderer.render(value, ctx)
            for key, value in spec.env_templates()
        }
        command = self.command(spec, options, ctx, main_args)
        mod_time = None
        if spec.mod_timestamp:
            mod_time = parse_timestamp(self.renderer.render(spec.mod_timestamp, ctx))
        env = self.environment(target, ctx, overlay)

        try:
            options.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            reason = e.strerror or str(e)
            raise BuildIOError(
                "create output directory", str(options.path.parent), reason
            ) from e
        logger.info("Building %s for %s", spec.build_id, target)
        self._run(
            command,
            env,
            cwd=spec.dir,
            target=target,
            output=options.path,
            timeout=timeout,
            cancel=cancel,
        )

        if mod_time is not None:
            set_mod_time(options.path, mod_time)

        registry.append(artifact)
        logger.info("Built %s", options.path)
        return artifact

    def command(
        self,
        spec: BuildSpec,
        options: BuildOptions,
        context: BuildMetadataContext,
        main_args: list[str],
    ) -> list[str]:
        """Construct the compiler command line for one target.

        Raises:
            TemplateError: If a flag template fails to render.
        """
        flags = [
            f for f in process_flags(self.renderer, context, spec.flags) if f
        ]
        asmflags = process_flags(
            self.renderer, context, spec.asmflags, ASMFLAGS_MARKER
        )
        gcflags = process_flags(self.renderer, context, spec.gcflags, GCFLAGS_MARKER)
        ldflags = process_flags(self.renderer, context, spec.ldflags)

        compiler = self.resolve_program(spec.compiler or DEFAULT_COMPILER)
        cmd = [compiler, "build", *flags, *asmflags, *gcflags]
        if ldflags:
            cmd.append(join_ldflags(ldflags))
        # The compiler runs from spec.dir, so relative output paths would move
        cmd.extend(["-o", str(options.path.absolute()), *main_args])
        return cmd

    def environment(
        self,
        target: Target,
        context: BuildMetadataContext,
        overlay: Mapping[str, str],
    ) -> Mapping[str, str]:
        """Build the read-only environment snapshot for one invocation.

        Layers, lowest to highest precedence: this process's environment,
        the context environment, the spec overlay, the target variables.
        """
        env = dict(os.environ)
        env.update(context.env)
        env.update(overlay)
        for key in TARGET_ENV_VARS:
            env.pop(key, None)
        env.update(target_environment(target))
        return MappingProxyType(env)

    def _run(
        self,
        command: list[str],
        env: Mapping[str, str],
        *,
        cwd: str,
        target: Target,
        output: Path,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> None:
        """Run the compiler and wait for it, honouring timeout and cancel.

        Output is decoded as UTF-8; undecodable bytes are replaced.
        """
        if cancel is not None and cancel.is_set():
            raise BuildCancelledError(f"build for {target} cancelled")

        logger.debug("Running: %s", to_shell_command(command))
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=dict(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise CompilerFailedError(
                f"failed to run {command[0]}: {e.strerror or e}"
            ) from e

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                out, _ = process.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                reason = None
                if cancel is not None and cancel.is_set():
                    reason = "cancelled"
                elif deadline is not None and time.monotonic() >= deadline:
                    reason = f"timed out after {timeout:g}s"
                if reason is None:
                    continue
                process.kill()
                process.communicate()
                if output.is_file():
                    output.unlink()
                raise BuildCancelledError(f"build for {target} {reason}")

        if process.returncode != 0:
            message = out.strip() or (
                f"{command[0]} exited with status {process.returncode}"
            )
            raise CompilerFailedError(message, output=out)
        if out.strip():
            logger.debug("%s", out.strip())
