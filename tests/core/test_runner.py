# SPDX-License-Identifier: MIT
"""Tests for crossbuild.core.runner."""

import sys
from pathlib import Path

import pytest

from crossbuild.core.artifact import ArtifactRegistry
from crossbuild.core.errors import (
    BuildCancelledError,
    BuildIOError,
    CompilerFailedError,
    InvalidTokenError,
    MissingVariableError,
)
from crossbuild.core.runner import BuildRunner, TargetResult, extension_for
from crossbuild.core.spec import BuildSpec
from crossbuild.core.target import Target
from crossbuild.toolchains.go import GoBuilder

skip_on_windows = pytest.mark.skipif(
    sys.platform == "win32", reason="fake compiler relies on a shebang"
)


class FailingGoBuilder(GoBuilder):
    """GoBuilder that refuses to build some targets."""

    def __init__(self, failing):
        super().__init__()
        self.failing = set(failing)

    def build(self, spec, options, context, registry, **kwargs):
        if options.target in self.failing:
            raise CompilerFailedError(f"refusing to build {options.target}")
        return super().build(spec, options, context, registry, **kwargs)


class TestExtensions:
    def test_extension_for(self):
        assert extension_for(Target("windows", "amd64")) == ".exe"
        assert extension_for(Target("js", "wasm")) == ".wasm"
        assert extension_for(Target("linux", "amd64")) == ""
        assert extension_for(Target("darwin", "arm64")) == ""


class TestTargetResult:
    def test_ok(self):
        assert TargetResult("linux_amd64").ok
        assert not TargetResult("linux_amd64", error=CompilerFailedError("x")).ok


class TestOptionsFor:
    def test_paths(self, tmp_path, context):
        runner = BuildRunner(GoBuilder(), dist=tmp_path)
        spec = BuildSpec(id="cli", binary="foo-$Version")
        options = runner.options_for(spec, Target("windows", "arm", arm="7"), context)
        assert options.target == "windows_arm_7"
        assert options.name == "foo-5.6.7.exe"
        assert options.ext == ".exe"
        assert options.path == tmp_path / "cli_windows_arm_7" / "foo-5.6.7.exe"

    def test_paths_without_id(self, tmp_path, context):
        runner = BuildRunner(GoBuilder(), dist=tmp_path)
        spec = BuildSpec(binary="foo")
        options = runner.options_for(spec, Target("js", "wasm"), context)
        assert options.path == tmp_path / "js_wasm" / "foo.wasm"

    def test_binary_in_subdirectory(self, tmp_path, context):
        runner = BuildRunner(GoBuilder(), dist=tmp_path)
        options = runner.options_for(
            BuildSpec(id="x", binary="bin/foo"), Target("linux", "amd64"), context
        )
        assert options.path == tmp_path / "x_linux_amd64" / "bin" / "foo"

    def test_binary_template_error(self, tmp_path, context):
        runner = BuildRunner(GoBuilder(), dist=tmp_path)
        with pytest.raises(MissingVariableError):
            runner.options_for(
                BuildSpec(binary="foo-${Env.NOPE}"), Target("linux", "amd64"), context
            )


class TestBuildRunnerValidation:
    def test_jobs_must_be_positive(self):
        with pytest.raises(ValueError, match="jobs must be at least 1"):
            BuildRunner(GoBuilder(), jobs=0)

    def test_invalid_targets_fail_before_any_build(self, tmp_path, context):
        registry = ArtifactRegistry()
        runner = BuildRunner(GoBuilder(), registry, dist=tmp_path)
        spec = BuildSpec(
            binary="foo", goarch=["mips"], gomips=["softfloat", "mehfloat"]
        )
        with pytest.raises(InvalidTokenError, match="^invalid gomips: mehfloat$"):
            runner.run(spec, context)
        assert len(registry) == 0


@skip_on_windows
class TestBuildRunnerRun:
    def make_spec(self, fake_go, source_dir, **kwargs):
        values = {
            "id": "foo",
            "binary": "foo",
            "dir": str(source_dir),
            "compiler": str(fake_go),
        }
        values.update(kwargs)
        return BuildSpec(**values)

    def test_all_targets(self, tmp_path, fake_go, source_dir, context):
        spec = self.make_spec(
            fake_go,
            source_dir,
            goos=["linux", "windows", "darwin"],
            goarch=["amd64", "arm", "mips"],
            goarm=["6"],
            gomips=["softfloat"],
        )
        runner = BuildRunner(GoBuilder(), dist=tmp_path / "dist", jobs=4)
        results = runner.run(spec, context)

        assert [r.target for r in results] == [
            "linux_amd64",
            "linux_arm_6",
            "linux_mips_softfloat",
            "windows_amd64",
            "windows_arm_6",
            "darwin_amd64",
        ]
        assert all(r.ok for r in results)
        assert len(runner.registry) == 6
        assert {a.target for a in runner.registry} == {r.target for r in results}
        exe = tmp_path / "dist" / "foo_windows_amd64" / "foo.exe"
        assert exe.is_file()

    def test_partial_success(self, tmp_path, fake_go, source_dir, context):
        spec = self.make_spec(
            fake_go,
            source_dir,
            targets=["linux_amd64", "windows_amd64", "darwin_arm64"],
        )
        registry = ArtifactRegistry()
        runner = BuildRunner(
            FailingGoBuilder(["windows_amd64"]), registry, dist=tmp_path, jobs=2
        )
        results = runner.run(spec, context)

        assert [r.ok for r in results] == [True, False, True]
        assert isinstance(results[1].error, CompilerFailedError)
        assert results[1].artifact is None
        assert sorted(a.target for a in registry) == ["darwin_arm64", "linux_amd64"]

    def test_unusable_output_directory_fails_only_that_target(
        self, tmp_path, fake_go, source_dir, context
    ):
        dist = tmp_path / "dist"
        dist.mkdir()
        (dist / "foo_linux_amd64").write_text("in the way")
        spec = self.make_spec(
            fake_go, source_dir, targets=["linux_amd64", "darwin_arm64"]
        )
        registry = ArtifactRegistry()
        runner = BuildRunner(GoBuilder(), registry, dist=dist, jobs=2)
        results = runner.run(spec, context)

        assert [r.target for r in results] == ["linux_amd64", "darwin_arm64"]
        assert isinstance(results[0].error, BuildIOError)
        assert results[1].ok
        assert [a.target for a in registry] == ["darwin_arm64"]

    def test_fail_fast(self, tmp_path, fake_go, source_dir, context):
        spec = self.make_spec(
            fake_go,
            source_dir,
            targets=["linux_amd64", "linux_386", "linux_arm64"],
            env=["FAKE_GO_SLEEP=30"],
        )
        registry = ArtifactRegistry()
        runner = BuildRunner(
            FailingGoBuilder(["linux_amd64"]),
            registry,
            dist=tmp_path,
            jobs=1,
            fail_fast=True,
        )
        results = runner.run(spec, context)

        assert isinstance(results[0].error, CompilerFailedError)
        assert isinstance(results[1].error, BuildCancelledError)
        assert isinstance(results[2].error, BuildCancelledError)
        assert len(registry) == 0

    def test_same_mod_time_for_all_targets(
        self, tmp_path, fake_go, source_dir, context
    ):
        spec = self.make_spec(
            fake_go,
            source_dir,
            goos=["linux", "darwin", "windows"],
            goarch=["amd64", "arm64"],
            mod_timestamp="1600000000",
        )
        runner = BuildRunner(GoBuilder(), dist=tmp_path, jobs=3)
        results = runner.run(spec, context)

        assert all(r.ok for r in results)
        mtimes = {Path(r.artifact.path).stat().st_mtime for r in results}
        assert mtimes == {1600000000}
