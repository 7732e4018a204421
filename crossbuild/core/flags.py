# SPDX-License-Identifier: MIT
"""Flag rendering utilities for crossbuild.

Each flag category of a build spec is a list of templates. They are
rendered one by one against the per-target metadata context; the caller
chooses the marker each rendered flag is prefixed with.

Linker flags are special: the compiler accepts a single ``-ldflags``
argument, so the rendered templates are joined into one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from crossbuild.core.context import BuildMetadataContext, Renderer

LDFLAGS_MARKER = "-ldflags="
GCFLAGS_MARKER = "-gcflags="
ASMFLAGS_MARKER = "-asmflags="


def process_flags(
    renderer: Renderer,
    context: BuildMetadataContext,
    templates: Iterable[str],
    prefix: str = "",
) -> list[str]:
    """Render flag templates individually.

    Args:
        renderer: Template renderer.
        context: Metadata context for this target.
        templates: Flag templates, in order.
        prefix: Marker prepended to each rendered flag (e.g. "-gcflags=").

    Returns:
        Rendered flags, in template order.

    Raises:
        TemplateError: Propagated unchanged from the renderer.

    Examples:
        >>> process_flags(SubstRenderer(), ctx, ["all=", "-N"], "-gcflags=")
        ['-gcflags=all=', '-gcflags=-N']
    """
    return [prefix + renderer.render(template, context) for template in templates]


def join_ldflags(flags: Iterable[str]) -> str:
    """Join linker flags into a single ``-ldflags=`` argument.

    Examples:
        >>> join_ldflags(["-s -w", "-X main.version=1.0"])
        '-ldflags=-s -w -X main.version=1.0'
    """
    return LDFLAGS_MARKER + " ".join(flags)
