# SPDX-License-Identifier: MIT
"""Shared fixtures for crossbuild tests."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from crossbuild.core.context import BuildMetadataContext

# Stand-in for the go command. It accepts the flags crossbuild emits,
# rejects unknown ones the way go does, writes a fake binary to the -o path
# and records its argv, cwd and environment next to it as <output>.json.
FAKE_GO = r'''
import json
import os
import sys
import time

KNOWN = ("-v", "-x", "-a", "-trimpath", "-race")
KNOWN_PREFIXES = ("-ldflags=", "-gcflags=", "-asmflags=", "-tags=")

args = sys.argv[1:]
if args == ["version"]:
    print("go version go0.0-fake " + sys.platform)
    sys.exit(0)
if not args or args[0] != "build":
    print("go: unknown command", file=sys.stderr)
    sys.exit(2)

output = None
rest = args[1:]
i = 0
while i < len(rest):
    arg = rest[i]
    if arg == "-o":
        output = rest[i + 1]
        i += 2
        continue
    if arg.startswith("-") and arg not in KNOWN and not arg.startswith(KNOWN_PREFIXES):
        print("flag provided but not defined: " + arg, file=sys.stderr)
        print("usage: go build [-o output] [build flags] [packages]", file=sys.stderr)
        sys.exit(2)
    i += 1

delay = float(os.environ.get("FAKE_GO_SLEEP", "0"))
if delay:
    time.sleep(delay)

if output is None:
    print("missing -o", file=sys.stderr)
    sys.exit(2)

with open(output, "w") as f:
    f.write("binary for " + os.environ.get("GOOS", "") + "_" + os.environ.get("GOARCH", ""))
with open(output + ".json", "w") as f:
    json.dump({"argv": sys.argv, "cwd": os.getcwd(), "env": dict(os.environ)}, f)
print("built " + output)
'''

GOOD_MAIN = "package main\nvar a = 1\nfunc main() {println(0)}\n"

MAIN_WITHOUT_MAIN_FUNC = "package main\nconst a = 2\nfunc notMain() {println(0)}\n"

# Stand-in for a compiler that fails with a diagnostic that is not valid UTF-8
GARBLED_GO = r'''
import sys

sys.stderr.buffer.write(b"main.go:1: bad byte \xff\xfe here\n")
sys.exit(2)
'''


def _write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(0o755)
    return path


@pytest.fixture
def write_main() -> Callable[..., Path]:
    """Factory writing a main.go into a folder.

    With ``with_main_func=False`` the file is ``package main`` but lacks
    ``func main()``.
    """

    def write(folder: Path, with_main_func: bool = True) -> Path:
        path = folder / "main.go"
        path.write_text(GOOD_MAIN if with_main_func else MAIN_WITHOUT_MAIN_FUNC)
        return path

    return write


@pytest.fixture
def read_invocation() -> Callable[[Path], dict]:
    """Loader for what the fake compiler recorded next to an output file."""

    def read(output: Path) -> dict:
        return json.loads(Path(f"{output}.json").read_text())

    return read


@pytest.fixture
def fake_go(tmp_path: Path) -> Path:
    """Path to an executable fake go command."""
    return _write_script(tmp_path / "bin" / "fake-go", FAKE_GO)


@pytest.fixture
def garbled_go(tmp_path: Path) -> Path:
    """Path to a fake go command whose diagnostic is not valid UTF-8."""
    return _write_script(tmp_path / "bin" / "garbled-go", GARBLED_GO)


@pytest.fixture
def source_dir(tmp_path: Path, write_main: Callable[..., Path]) -> Path:
    """A source directory containing a buildable main package."""
    folder = tmp_path / "src"
    folder.mkdir()
    write_main(folder)
    return folder


@pytest.fixture
def context() -> BuildMetadataContext:
    return BuildMetadataContext(
        project_name="foo",
        version="5.6.7",
        tag="v5.6.7",
        commit="0123456789abcdef",
        commit_date=datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        date=datetime(2021, 6, 7, 8, 9, 10, tzinfo=timezone.utc),
        env={"GO_FLAGS": "-v", "FOO": "123"},
    )
