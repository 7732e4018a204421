# SPDX-License-Identifier: MIT
"""Custom exceptions for crossbuild.

All crossbuild exceptions inherit from CrossbuildError. Error texts are
part of the external contract: packaging and reporting layers match on
substrings, so messages are built in exactly one place per error.
"""

from __future__ import annotations


class CrossbuildError(Exception):
    """Base class for all crossbuild exceptions.

    Attributes:
        message: The error message.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(CrossbuildError):
    """Invalid configuration file or build specification."""


class InvalidTargetError(CrossbuildError):
    """Unknown OS/arch/variant token or malformed target string."""


class InvalidTokenError(InvalidTargetError):
    """A single dimension token is not in its known-valid set.

    Attributes:
        dimension: Dimension name (goos, goarch, goarm, gomips).
        token: The offending token, verbatim.
    """

    def __init__(self, dimension: str, token: str) -> None:
        self.dimension = dimension
        self.token = token
        super().__init__(f"invalid {dimension}: {token}")


class MalformedTargetError(InvalidTargetError):
    """A canonical target string could not be parsed or is not buildable.

    Attributes:
        target: The full target string.
    """

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"{target} is not a valid build target")


class TemplateError(CrossbuildError):
    """Error while rendering a template."""


class TemplateSyntaxError(TemplateError):
    """Template text is malformed.

    Attributes:
        template: The offending template.
        column: 1-based column where the problem was found.
    """

    def __init__(self, template: str, reason: str, column: int) -> None:
        self.template = template
        self.column = column
        super().__init__(f"template: {template}: {reason} at column {column}")


class MissingVariableError(TemplateError):
    """Referenced variable does not exist.

    Attributes:
        variable: The name of the missing variable.
    """

    def __init__(self, variable: str) -> None:
        self.variable = variable
        super().__init__(f"undefined variable: ${variable}")


class NoMainFunctionError(CrossbuildError):
    """The source selected for a build declares no main function.

    Attributes:
        build_id: Identifier of the build.
    """

    def __init__(self, build_id: str) -> None:
        self.build_id = build_id
        super().__init__(f"build for {build_id} does not contain a main function")


class MainFileNotFoundError(CrossbuildError):
    """An explicitly selected main file does not exist.

    Attributes:
        path: The path that was checked.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"couldn't find main file: stat {path}: {reason}")


class CompilerFailedError(CrossbuildError):
    """The compiler exited non-zero or could not be launched.

    Attributes:
        output: Diagnostic text produced by the compiler, if any.
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)


class BuildCancelledError(CrossbuildError):
    """A build was cancelled or timed out before the compiler finished."""


class TimestampError(CrossbuildError):
    """The produced binary's timestamps could not be normalized."""


class BuildIOError(CrossbuildError):
    """A filesystem operation of a target build failed.

    Attributes:
        path: The path that could not be read or created.
    """

    def __init__(self, action: str, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"failed to {action} {path}: {reason}")
