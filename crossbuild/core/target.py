# SPDX-License-Identifier: MIT
"""Cross-compilation targets.

A Target is a validated {OS, architecture, optional variant} tuple. The
variant is an ARM revision for ``arm`` and a floating point mode for the
MIPS family; every other architecture has no variant.

The canonical string form joins the fields with underscores:

    linux_amd64
    linux_arm_6
    linux_mips_softfloat

It is produced only by ``Target.__str__`` and parsed only by
``Target.parse``.
"""

from __future__ import annotations

from dataclasses import dataclass

from crossbuild.core.errors import InvalidTokenError, MalformedTargetError

VALID_OS: tuple[str, ...] = (
    "aix",
    "android",
    "darwin",
    "dragonfly",
    "freebsd",
    "illumos",
    "ios",
    "js",
    "linux",
    "netbsd",
    "openbsd",
    "plan9",
    "solaris",
    "windows",
)

VALID_ARCH: tuple[str, ...] = (
    "386",
    "amd64",
    "arm",
    "arm64",
    "mips",
    "mipsle",
    "mips64",
    "mips64le",
    "ppc64",
    "ppc64le",
    "riscv64",
    "s390x",
    "wasm",
)

VALID_ARM: tuple[str, ...] = ("5", "6", "7")

VALID_MIPS: tuple[str, ...] = ("hardfloat", "softfloat")

ARM_FAMILY: frozenset[str] = frozenset({"arm"})

MIPS_FAMILY: frozenset[str] = frozenset({"mips", "mipsle", "mips64", "mips64le"})

# OS/arch pairs the compiler can actually produce binaries for
VALID_PAIRS: frozenset[tuple[str, str]] = frozenset(
    {
        ("aix", "ppc64"),
        ("android", "386"),
        ("android", "amd64"),
        ("android", "arm"),
        ("android", "arm64"),
        ("darwin", "amd64"),
        ("darwin", "arm64"),
        ("dragonfly", "amd64"),
        ("freebsd", "386"),
        ("freebsd", "amd64"),
        ("freebsd", "arm"),
        ("freebsd", "arm64"),
        ("illumos", "amd64"),
        ("ios", "arm64"),
        ("js", "wasm"),
        ("linux", "386"),
        ("linux", "amd64"),
        ("linux", "arm"),
        ("linux", "arm64"),
        ("linux", "mips"),
        ("linux", "mipsle"),
        ("linux", "mips64"),
        ("linux", "mips64le"),
        ("linux", "ppc64"),
        ("linux", "ppc64le"),
        ("linux", "riscv64"),
        ("linux", "s390x"),
        ("netbsd", "386"),
        ("netbsd", "amd64"),
        ("netbsd", "arm"),
        ("netbsd", "arm64"),
        ("openbsd", "386"),
        ("openbsd", "amd64"),
        ("openbsd", "arm"),
        ("openbsd", "arm64"),
        ("openbsd", "mips64"),
        ("plan9", "386"),
        ("plan9", "amd64"),
        ("plan9", "arm"),
        ("solaris", "amd64"),
        ("windows", "386"),
        ("windows", "amd64"),
        ("windows", "arm"),
        ("windows", "arm64"),
    }
)


def check_os(token: str) -> None:
    """Raise InvalidTokenError unless token is a known OS."""
    if token not in VALID_OS:
        raise InvalidTokenError("goos", token)


def check_arch(token: str) -> None:
    """Raise InvalidTokenError unless token is a known architecture."""
    if token not in VALID_ARCH:
        raise InvalidTokenError("goarch", token)


def check_arm(token: str) -> None:
    """Raise InvalidTokenError unless token is a known ARM revision."""
    if token not in VALID_ARM:
        raise InvalidTokenError("goarm", token)


def check_mips(token: str) -> None:
    """Raise InvalidTokenError unless token is a known MIPS float mode."""
    if token not in VALID_MIPS:
        raise InvalidTokenError("gomips", token)


def is_valid_pair(goos: str, goarch: str) -> bool:
    """Check whether an OS/arch combination can be built."""
    return (goos, goarch) in VALID_PAIRS


@dataclass(frozen=True)
class Target:
    """A single cross-compilation output.

    Attributes:
        os: Operating system token (e.g. "linux").
        arch: Architecture token (e.g. "arm").
        arm: ARM revision, only for arm.
        mips: MIPS float mode, only for the MIPS family.
    """

    os: str
    arch: str
    arm: str = ""
    mips: str = ""

    @property
    def variant(self) -> str:
        """The variant segment, or an empty string."""
        return self.arm or self.mips

    def __str__(self) -> str:
        parts = [self.os, self.arch]
        if self.variant:
            parts.append(self.variant)
        return "_".join(parts)

    def validate(self) -> None:
        """Check every field of this target.

        Tokens are checked in the order OS, arch, ARM, MIPS; the first
        unknown token is reported. Structural problems (a variant on an
        architecture that has none, an unbuildable pair) report the
        canonical string.

        Raises:
            InvalidTargetError: If the target is not buildable.
        """
        check_os(self.os)
        check_arch(self.arch)
        if self.arm:
            check_arm(self.arm)
        if self.mips:
            check_mips(self.mips)
        if self.arm and self.arch not in ARM_FAMILY:
            raise MalformedTargetError(str(self))
        if self.mips and self.arch not in MIPS_FAMILY:
            raise MalformedTargetError(str(self))
        if not is_valid_pair(self.os, self.arch):
            raise MalformedTargetError(str(self))

    @classmethod
    def parse(cls, value: str) -> Target:
        """Parse and validate a canonical target string.

        Args:
            value: e.g. "linux_amd64" or "linux_arm_6".

        Returns:
            The validated Target.

        Raises:
            InvalidTargetError: If the string is malformed or names an
                unknown or unbuildable combination.
        """
        parts = value.split("_")
        if len(parts) not in (2, 3) or not all(parts):
            raise MalformedTargetError(value)

        goos, goarch = parts[0], parts[1]
        check_os(goos)
        check_arch(goarch)

        arm = mips = ""
        if len(parts) == 3:
            if goarch in ARM_FAMILY:
                arm = parts[2]
            elif goarch in MIPS_FAMILY:
                mips = parts[2]
            else:
                raise MalformedTargetError(value)

        target = cls(goos, goarch, arm=arm, mips=mips)
        if not is_valid_pair(goos, goarch):
            raise MalformedTargetError(value)
        target.validate()
        return target
