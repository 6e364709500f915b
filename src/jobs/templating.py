"""Minimal ``{{name}}`` placeholder rendering for configurable message text."""

import re

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class TemplateError(ValueError):
    """Raised when a template references a binding that was not supplied."""


def placeholders(template: str) -> set[str]:
    """Return the names referenced by `template`."""
    return set(_PLACEHOLDER.findall(template))


def render(template: str, bindings: dict[str, str]) -> str:
    """Substitute every ``{{name}}`` in `template` from `bindings`.

    >>> render("{{subject}} ({{month}})", {"subject": "Rota", "month": "June"})
    'Rota (June)'
    """
    missing = placeholders(template) - bindings.keys()
    if missing:
        raise TemplateError(f"No value for placeholder(s): {', '.join(sorted(missing))}")
    return _PLACEHOLDER.sub(lambda m: bindings[m.group(1)], template)
