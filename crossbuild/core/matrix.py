# SPDX-License-Identifier: MIT
"""Target matrix expansion.

Turns the OS/arch/variant lists of a build spec (or its explicit target
list) into a deduplicated, validated list of Targets.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from crossbuild.core.target import (
    ARM_FAMILY,
    MIPS_FAMILY,
    Target,
    check_arch,
    check_arm,
    check_mips,
    check_os,
    is_valid_pair,
)

logger = logging.getLogger(__name__)

DEFAULT_GOOS: tuple[str, ...] = ("linux", "darwin")
DEFAULT_GOARCH: tuple[str, ...] = ("amd64", "arm64", "386")
DEFAULT_GOARM: tuple[str, ...] = ("6",)
DEFAULT_GOMIPS: tuple[str, ...] = ("softfloat",)


def validate_dimensions(
    goos: Iterable[str],
    goarch: Iterable[str],
    goarm: Iterable[str],
    gomips: Iterable[str],
) -> None:
    """Check every token of every dimension list.

    Lists are scanned in the order OS, arch, ARM, MIPS, each in list
    order; the first unknown token is reported.

    Raises:
        InvalidTokenError: On the first unknown token.
    """
    for token in goos:
        check_os(token)
    for token in goarch:
        check_arch(token)
    for token in goarm:
        check_arm(token)
    for token in gomips:
        check_mips(token)


def matrix(
    goos: Sequence[str] = (),
    goarch: Sequence[str] = (),
    goarm: Sequence[str] = (),
    gomips: Sequence[str] = (),
) -> list[Target]:
    """Compute the cross product of the dimension lists.

    Empty lists are replaced by the defaults. ARM revisions multiply only
    with arm, MIPS float modes only with the MIPS family. OS/arch pairs
    that cannot be built are skipped.

    Returns:
        Targets in OS-major order, without duplicates.

    Raises:
        InvalidTokenError: If any list holds an unknown token.
    """
    goos = tuple(goos) or DEFAULT_GOOS
    goarch = tuple(goarch) or DEFAULT_GOARCH
    goarm = tuple(goarm) or DEFAULT_GOARM
    gomips = tuple(gomips) or DEFAULT_GOMIPS
    validate_dimensions(goos, goarch, goarm, gomips)

    targets: list[Target] = []
    for os_token in goos:
        for arch in goarch:
            if not is_valid_pair(os_token, arch):
                logger.debug("Skipping unsupported pair %s_%s", os_token, arch)
                continue
            if arch in ARM_FAMILY:
                targets.extend(Target(os_token, arch, arm=arm) for arm in goarm)
            elif arch in MIPS_FAMILY:
                targets.extend(Target(os_token, arch, mips=mips) for mips in gomips)
            else:
                targets.append(Target(os_token, arch))
    return unique(targets)


def parse_targets(values: Iterable[str]) -> list[Target]:
    """Parse an explicit list of canonical target strings.

    Raises:
        InvalidTargetError: On the first invalid entry.
    """
    return unique(Target.parse(value) for value in values)


def unique(targets: Iterable[Target]) -> list[Target]:
    """Drop duplicate targets, keeping first occurrences in order."""
    seen: set[str] = set()
    result: list[Target] = []
    for target in targets:
        key = str(target)
        if key not in seen:
            seen.add(key)
            result.append(target)
    return result


def expand(
    targets: Sequence[str] = (),
    goos: Sequence[str] = (),
    goarch: Sequence[str] = (),
    goarm: Sequence[str] = (),
    gomips: Sequence[str] = (),
) -> list[Target]:
    """Resolve the final target list.

    An explicit target list wins over the dimension lists.
    """
    if targets:
        return parse_targets(targets)
    return matrix(goos, goarch, goarm, gomips)
