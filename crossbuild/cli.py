# SPDX-License-Identifier: MIT
"""Command-line interface for crossbuild."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from crossbuild.configure.config import (
    DEFAULT_CONFIG_FILE,
    ProjectConfig,
    default_jobs,
    load_config,
)
from crossbuild.core.artifact import ArtifactRegistry
from crossbuild.core.context import BuildMetadataContext
from crossbuild.core.errors import CrossbuildError
from crossbuild.core.runner import BuildRunner
from crossbuild.toolchains.go import GoBuilder
from crossbuild.util.git import read_git_info

# Set up logging
logger = logging.getLogger("crossbuild")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def _load(args: argparse.Namespace) -> ProjectConfig | None:
    config_path = Path(args.config)
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        logger.error("No %s found", config_path)
        logger.info("Create one with 'crossbuild init'")
        return None
    except CrossbuildError as e:
        logger.error("%s", e)
        return None

    if args.id:
        config.builds = [b for b in config.builds if b.id in args.id]
        if not config.builds:
            logger.error("No build with id %s in %s", ", ".join(args.id), config_path)
            return None
    return config


def make_context(
    args: argparse.Namespace,
    project_name: str,
    variables: dict[str, str],
) -> BuildMetadataContext:
    """Build the run-wide metadata context.

    Git provides tag, commit and commit date; command-line options
    override them. KEY=value arguments extend the environment.
    """
    git = read_git_info(Path.cwd())
    if args.tag is not None:
        git = replace(git, tag=args.tag)
    version = args.release_version
    if version is None:
        version = git.version
    env = dict(os.environ)
    env.update(variables)
    return BuildMetadataContext(
        project_name=project_name,
        version=version,
        tag=git.tag,
        commit=args.commit if args.commit is not None else git.commit,
        commit_date=git.commit_date,
        env=env,
    )


def cmd_targets(args: argparse.Namespace) -> int:
    """List the resolved targets of every build."""
    setup_logging(args.verbose, args.debug)

    config = _load(args)
    if config is None:
        return 1

    builder = GoBuilder()
    for spec in config.builds:
        try:
            spec = builder.with_defaults(spec)
        except CrossbuildError as e:
            logger.error("%s: %s", spec.build_id, e)
            return 1
        print(f"{spec.build_id}:")
        for target in spec.targets:
            print(f"  {target}")
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    """Build every target of every build.

    Failures of single targets do not stop the others (unless
    --fail-fast); the exit code is 1 if any target failed.
    """
    setup_logging(args.verbose, args.debug)

    config = _load(args)
    if config is None:
        return 1

    variables, remaining = parse_variables(getattr(args, "extra", []))
    if remaining:
        logger.error("Unexpected arguments: %s", " ".join(remaining))
        return 1

    try:
        jobs = args.jobs or default_jobs()
    except CrossbuildError as e:
        logger.error("%s", e)
        return 1

    context = make_context(args, config.project_name, variables)
    registry = ArtifactRegistry()
    runner = BuildRunner(
        GoBuilder(),
        registry,
        dist=Path(args.dist) if args.dist else config.dist,
        jobs=jobs,
        timeout=args.timeout,
        fail_fast=args.fail_fast,
    )

    failed = 0
    for spec in config.builds:
        try:
            results = runner.run(spec, context)
        except CrossbuildError as e:
            logger.error("%s: %s", spec.build_id, e)
            failed += 1
            continue
        for result in results:
            if result.ok and result.artifact is not None:
                print(f"ok     {result.target:<28} {result.artifact.path}")
            else:
                print(f"FAILED {result.target:<28} {result.error}")
                failed += 1
        if failed and args.fail_fast:
            break

    logger.info("%d artifact(s) built", len(registry))
    return 1 if failed else 0


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new crossbuild configuration.

    Creates a template crossbuild.toml file.
    """
    setup_logging(args.verbose, args.debug)

    config_path = Path(args.config)

    if config_path.exists() and not args.force:
        logger.error("%s already exists (use --force to overwrite)", config_path)
        return 1

    name = Path.cwd().name
    template = f'''\
# crossbuild configuration
#
# Templates may reference $Version, $Tag, $Commit, $ShortCommit, $Date,
# $CommitDate, $CommitTimestamp, ${{Env.NAME}}, and per target $Os, $Arch,
# $Arm, $Mips, $Binary and $ArtifactName.

project_name = "{name}"
dist = "dist"

[[builds]]
id = "{name}"
binary = "{name}"
goos = ["linux", "darwin", "windows"]
goarch = ["amd64", "arm64"]
ldflags = ["-s -w -X main.version=$Version -X main.commit=$Commit"]
env = ["CGO_ENABLED=0"]
# mod_timestamp = "$CommitTimestamp"
'''

    config_path.write_text(template)
    logger.info("Created %s", config_path)

    print(f"Created {config_path}")
    print("Next steps:")
    print("  1. Edit it to describe your builds")
    print("  2. Run 'crossbuild targets' to check the target matrix")
    print("  3. Run 'crossbuild build' to compile")

    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "-f",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file (default: {DEFAULT_CONFIG_FILE})",
    )


def add_selection_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments selecting builds from the configuration."""
    parser.add_argument(
        "--id",
        action="append",
        metavar="ID",
        help="Only use the build with this id (repeatable)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the crossbuild CLI."""
    parser = argparse.ArgumentParser(
        prog="crossbuild",
        description="Cross-compile Go binaries for a matrix of targets.",
        epilog="Run 'crossbuild <command> --help' for command-specific help.",
    )
    from crossbuild import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # crossbuild init
    init_parser = subparsers.add_parser(
        "init", help="Create a template configuration file"
    )
    init_parser.add_argument(
        "--force", action="store_true", help="Overwrite existing files"
    )
    add_common_args(init_parser)
    init_parser.set_defaults(func=cmd_init)

    # crossbuild targets
    targets_parser = subparsers.add_parser(
        "targets", help="List the resolved targets of each build"
    )
    add_common_args(targets_parser)
    add_selection_args(targets_parser)
    targets_parser.set_defaults(func=cmd_targets)

    # crossbuild build
    build_parser = subparsers.add_parser("build", help="Build all targets")
    add_common_args(build_parser)
    add_selection_args(build_parser)
    build_parser.add_argument(
        "-j", "--jobs", type=int, help="Number of parallel builds"
    )
    build_parser.add_argument("-d", "--dist", help="Output directory")
    build_parser.add_argument(
        "--timeout", type=float, help="Per-target compiler timeout in seconds"
    )
    build_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Cancel remaining targets after the first failure",
    )
    build_parser.add_argument(
        "--release-version", help="Version (default: git tag without 'v')"
    )
    build_parser.add_argument("--tag", help="Tag (default: latest git tag)")
    build_parser.add_argument("--commit", help="Commit (default: git HEAD)")
    build_parser.add_argument(
        "extra",
        nargs="*",
        help="Template environment variables (KEY=value)",
    )
    build_parser.set_defaults(func=cmd_build)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
