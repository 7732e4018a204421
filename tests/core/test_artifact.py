# SPDX-License-Identifier: MIT
"""Tests for crossbuild.core.artifact."""

import threading
from pathlib import Path

import pytest

from crossbuild.core.artifact import Artifact, ArtifactRegistry, ArtifactType


def make_artifact(i=0, **kwargs):
    defaults = {
        "name": f"bin{i}",
        "path": f"dist/bin{i}",
        "goos": "linux",
        "goarch": "amd64",
    }
    defaults.update(kwargs)
    return Artifact(**defaults)


class TestArtifact:
    def test_path_coerced(self):
        assert make_artifact().path == Path("dist/bin0")

    def test_target(self):
        assert make_artifact().target == "linux_amd64"
        assert make_artifact(goarch="arm", goarm="7").target == "linux_arm_7"
        assert (
            make_artifact(goarch="mips", gomips="softfloat").target
            == "linux_mips_softfloat"
        )

    def test_default_type(self):
        assert make_artifact().type is ArtifactType.BINARY

    def test_extra_is_read_only(self):
        artifact = make_artifact(extra={"ID": "demo"})
        assert artifact.extra["ID"] == "demo"
        with pytest.raises(TypeError):
            artifact.extra["ID"] = "other"


class TestArtifactRegistry:
    def test_append_and_list(self):
        registry = ArtifactRegistry()
        a, b = make_artifact(0), make_artifact(1)
        registry.append(a)
        registry.append(b)
        assert registry.list() == [a, b]
        assert len(registry) == 2
        assert list(registry) == [a, b]

    def test_list_is_snapshot(self):
        registry = ArtifactRegistry()
        registry.append(make_artifact())
        snapshot = registry.list()
        registry.append(make_artifact(1))
        assert len(snapshot) == 1

    def test_filter(self):
        registry = ArtifactRegistry()
        registry.append(make_artifact())
        assert len(registry.filter(ArtifactType.BINARY)) == 1

    def test_concurrent_appends(self):
        registry = ArtifactRegistry()
        per_thread = 200

        def worker(offset):
            for i in range(per_thread):
                registry.append(make_artifact(offset * per_thread + i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        names = {a.name for a in registry.list()}
        assert len(registry) == 8 * per_thread
        assert len(names) == 8 * per_thread
