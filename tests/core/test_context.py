# SPDX-License-Identifier: MIT
"""Tests for crossbuild.core.context."""

from datetime import datetime, timezone

import pytest

from crossbuild.core.artifact import Artifact
from crossbuild.core.context import BuildMetadataContext, Renderer, SubstRenderer
from crossbuild.core.errors import MissingVariableError


def make_context(**kwargs):
    defaults = {
        "project_name": "demo",
        "version": "1.2.3",
        "tag": "v1.2.3",
        "commit": "0123456789abcdef",
        "commit_date": datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "date": datetime(2021, 6, 7, 8, 9, 10, tzinfo=timezone.utc),
        "env": {"FOO": "123"},
    }
    defaults.update(kwargs)
    return BuildMetadataContext(**defaults)


class TestBuildMetadataContext:
    def test_namespace_keys(self):
        ns = make_context().as_namespace()
        assert ns["ProjectName"] == "demo"
        assert ns["Version"] == "1.2.3"
        assert ns["Tag"] == "v1.2.3"
        assert ns["Commit"] == "0123456789abcdef"
        assert ns["ShortCommit"] == "0123456"
        assert ns["Date"] == "2021-06-07T08:09:10Z"
        assert ns["CommitDate"] == "2020-01-02T03:04:05Z"
        assert ns["CommitTimestamp"] == 1577934245
        assert ns["Env.FOO"] == "123"

    def test_commit_date_defaults_to_build_date(self):
        ns = make_context(commit_date=None).as_namespace()
        assert ns["CommitDate"] == ns["Date"]

    def test_artifact_keys_absent_by_default(self):
        ns = make_context().as_namespace()
        assert "Os" not in ns
        assert "Binary" not in ns

    def test_env_is_read_only(self):
        ctx = make_context()
        with pytest.raises(TypeError):
            ctx.env["FOO"] = "changed"

    def test_env_copied_from_caller(self):
        env = {"FOO": "1"}
        ctx = make_context(env=env)
        env["FOO"] = "2"
        assert ctx.env["FOO"] == "1"

    def test_with_artifact(self):
        ctx = make_context()
        artifact = Artifact(
            name="demo.exe",
            path="dist/demo_windows_amd64/demo.exe",
            goos="windows",
            goarch="amd64",
            extra={"Binary": "demo", "Ext": ".exe"},
        )
        scoped = ctx.with_artifact(artifact)
        ns = scoped.as_namespace()
        assert ns["Os"] == "windows"
        assert ns["Arch"] == "amd64"
        assert ns["Arm"] == ""
        assert ns["Binary"] == "demo"
        assert ns["ArtifactName"] == "demo.exe"
        assert ctx.os is None  # Original untouched


class TestSubstRenderer:
    def test_is_renderer(self):
        assert isinstance(SubstRenderer(), Renderer)

    def test_render(self):
        out = SubstRenderer().render(
            "-X main.version=$Version -X main.commit=$ShortCommit", make_context()
        )
        assert out == "-X main.version=1.2.3 -X main.commit=0123456"

    def test_render_artifact_key_without_artifact(self):
        with pytest.raises(MissingVariableError, match=r"\$Os"):
            SubstRenderer().render("$Os", make_context())

    def test_time_function(self):
        assert SubstRenderer().render("${time(%Y)}", make_context()) == "2021"
