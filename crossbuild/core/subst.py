# SPDX-License-Identifier: MIT
"""Template substitution engine for crossbuild.

Flag templates, binary names, environment overlays and timestamps are all
rendered through this module.

Supported syntax:
- Simple variables: $Version or ${Version}
- Namespaced variables: $Env.HOME or ${Env.HOME}
- Escaped dollars: $$ becomes literal $
- Functions: ${tolower(Os)}, ${toupper(Arch)}, ${replace(Version, ., _)},
             ${trimprefix(Tag, v)}, ${join(sep, list)}, ${time(%Y%m%d)}

Values are data: a looked-up value is inserted verbatim, never expanded a
second time.

Errors are raised with deterministic messages, since tooling matches on
them:
- TemplateSyntaxError for unterminated or malformed ${...}
- MissingVariableError for lookups of undefined names
- TemplateError for bad function calls
"""

from __future__ import annotations

import platform
import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from crossbuild.core.errors import (
    MissingVariableError,
    TemplateError,
    TemplateSyntaxError,
)

# =============================================================================
# Namespace for variable lookup
# =============================================================================


class Namespace:
    """Variable lookup with dotted notation into nested mappings."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data) if data else {}

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self._resolve(key)
        except KeyError:
            return default

    def _resolve(self, key: str) -> Any:
        if "." in key:
            parts = key.split(".", 1)
            sub = self._data.get(parts[0])
            if sub is None:
                raise KeyError(key)
            if isinstance(sub, Mapping):
                # Mapping keys may themselves contain dots (e.g. env names)
                if parts[1] in sub:
                    return sub[parts[1]]
                return Namespace(sub)._resolve(parts[1])
            raise KeyError(key)
        if key in self._data:
            return self._data[key]
        raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value


_MISSING = object()

# Sentinel character to represent literal $ during expansion (replaced at the end)
_DOLLAR_SENTINEL = "\x00"


# =============================================================================
# Pattern matching
# =============================================================================

# Match: $$, ${func(args)}, ${var}, $var
_TOKEN_PATTERN = re.compile(
    r"(\$\$)"  # Group 1: Escaped dollar
    r"|"
    r"\$\{(\w+)\(([^)]*)\)\}"  # Group 2,3: Function ${func(args)}
    r"|"
    r"\$\{([a-zA-Z_][a-zA-Z0-9_.]*)\}"  # Group 4: Braced ${var}
    r"|"
    r"\$([a-zA-Z_][a-zA-Z0-9_]*(?:\.[a-zA-Z_][a-zA-Z0-9_]*)*)"  # Group 5: $var
)

_VAR_BODY = re.compile(r"[a-zA-Z_][a-zA-Z0-9_.]*")
_FUNC_BODY = re.compile(r"\w+\([^)]*\)")
_ARG_SPLIT = re.compile(r",\s*")


# =============================================================================
# Core substitution
# =============================================================================


def render(template: str, namespace: Namespace | Mapping[str, Any]) -> str:
    """Expand variables and functions in a template string.

    Args:
        template: Text with $var, ${var} or ${func(args)} references.
        namespace: Variables to substitute.

    Returns:
        The rendered text.

    Raises:
        TemplateSyntaxError: If the template is malformed.
        MissingVariableError: If a referenced variable is undefined.
        TemplateError: For unknown functions or bad function arguments.
    """
    ns = namespace if isinstance(namespace, Namespace) else Namespace(namespace)
    check_syntax(template)

    def replace_match(match: re.Match[str]) -> str:
        if match.group(1):  # $$
            return _DOLLAR_SENTINEL

        if match.group(2):  # Function call
            func_result = _call_function(match.group(2), match.group(3), ns)
            return " ".join(str(x) for x in func_result)

        var_name = match.group(4) or match.group(5)
        return _format_value(var_name, _lookup_var(var_name, ns))

    return _TOKEN_PATTERN.sub(replace_match, template).replace(_DOLLAR_SENTINEL, "$")


def check_syntax(template: str) -> None:
    """Scan a template for malformed ${...} references.

    A lone $ not followed by a name or brace is kept literally.

    Raises:
        TemplateSyntaxError: On the first malformed reference.
    """
    i = 0
    n = len(template)
    while i < n:
        if template[i] != "$":
            i += 1
            continue
        nxt = template[i + 1] if i + 1 < n else ""
        if nxt == "$":
            i += 2
            continue
        if nxt == "{":
            close = template.find("}", i + 2)
            if close == -1:
                raise TemplateSyntaxError(template, "unterminated '${'", i + 1)
            body = template[i + 2 : close]
            if not body:
                raise TemplateSyntaxError(template, "empty '${}'", i + 1)
            if not (_VAR_BODY.fullmatch(body) or _FUNC_BODY.fullmatch(body)):
                raise TemplateSyntaxError(
                    template, f"bad substitution '${{{body}}}'", i + 1
                )
            i = close + 1
            continue
        i += 1


def _format_value(var_name: str, value: Any) -> str:
    if isinstance(value, (list, tuple)):
        raise TemplateError(
            f"List variable ${var_name} cannot be rendered as text. "
            f"Use ${{join(sep, {var_name})}}."
        )
    if isinstance(value, Mapping):
        raise TemplateError(f"Namespace ${var_name} cannot be rendered as text")
    return str(value)


def _lookup_var(var_name: str, namespace: Namespace) -> Any:
    value = namespace.get(var_name, _MISSING)
    if value is _MISSING:
        raise MissingVariableError(var_name)
    return value


def _call_function(func_name: str, args_str: str, namespace: Namespace) -> list[str]:
    """Call a substitution function. Always returns a list."""
    args = [a.strip() for a in _ARG_SPLIT.split(args_str) if a.strip()]

    if func_name in ("tolower", "toupper"):
        if len(args) != 1:
            raise TemplateError(f"{func_name}() requires 1 arg, got {len(args)}")
        value = str(_resolve_arg(args[0], namespace))
        return [value.lower() if func_name == "tolower" else value.upper()]

    elif func_name == "replace":
        if len(args) != 3:
            raise TemplateError(f"replace() requires 3 args, got {len(args)}")
        value = str(_resolve_arg(args[0], namespace))
        return [value.replace(args[1], args[2])]

    elif func_name == "trimprefix":
        if len(args) != 2:
            raise TemplateError(f"trimprefix() requires 2 args, got {len(args)}")
        value = str(_resolve_arg(args[0], namespace))
        return [value.removeprefix(args[1])]

    elif func_name == "join":
        if len(args) != 2:
            raise TemplateError(f"join() requires 2 args, got {len(args)}")
        sep = str(_resolve_arg(args[0], namespace))
        items = _resolve_arg(args[1], namespace)
        items = items if isinstance(items, (list, tuple)) else [items]
        return [sep.join(str(item) for item in items)]

    elif func_name == "time":
        # Formats the build date, not the wall clock, so rendering stays pure
        if len(args) != 1:
            raise TemplateError(f"time() requires 1 arg, got {len(args)}")
        date = _lookup_var("Date", namespace)
        if not isinstance(date, datetime):
            date = datetime.fromisoformat(str(date).replace("Z", "+00:00"))
        return [date.strftime(args[0])]

    else:
        raise TemplateError(f"Unknown function: {func_name}")


def _resolve_arg(arg: str, namespace: Namespace) -> Any:
    """Resolve function argument - variable reference or literal."""
    if arg.startswith("${") and arg.endswith("}"):
        return _lookup_var(arg[2:-1], namespace)
    if arg.startswith("$"):
        return _lookup_var(arg[1:], namespace)

    # Dotted name = implicit variable reference
    if re.match(r"^[a-zA-Z_][a-zA-Z0-9_.]*$", arg) and "." in arg:
        return _lookup_var(arg, namespace)

    # Simple name - check if it's a variable
    if re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", arg):
        value = namespace.get(arg, _MISSING)
        if value is not _MISSING:
            return value

    return arg  # Literal


# =============================================================================
# Shell command formatting
# =============================================================================


def to_shell_command(tokens: Sequence[str], shell: str = "auto") -> str:
    """Convert an argument vector to a shell command string with quoting.

    Used for logging and for reproducing a failed compiler invocation by hand.

    Args:
        tokens: Command arguments.
        shell: "auto", "bash" or "cmd".
    """
    if shell == "auto":
        shell = "cmd" if platform.system() == "Windows" else "bash"
    return " ".join(_quote_for_shell(str(t), shell) for t in tokens)


def _quote_for_shell(s: str, shell: str) -> str:
    """Quote string for target shell if needed."""
    if not s:
        return '""' if shell == "cmd" else "''"

    if shell == "bash":
        needs_quote = any(c in s for c in " \t\n\"'\\$`!*?[](){}|&;<>")
        if not needs_quote:
            return s
        if "'" not in s:
            return f"'{s}'"
        escaped = (
            s.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("$", "\\$")
            .replace("`", "\\`")
        )
        return f'"{escaped}"'

    elif shell == "cmd":
        needs_quote = any(c in s for c in ' \t"^&|<>()%!')
        if not needs_quote:
            return s
        return f'"{s.replace(chr(34), chr(34) + chr(34))}"'

    return f'"{s}"' if " " in s else s

