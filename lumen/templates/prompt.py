"""Prompt templates with ``{{name}}`` placeholder substitution.

Usage::

    template = PromptTemplate("Translate to {{language}}: {{text}}")
    template.format({"language": "French", "text": "Hello"})
    template.format("language", "French", "text", "Hello")
    template.format(language="French", text="Hello")
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from lumen.errors import TemplateError

# {{ identifier }} with optional inner whitespace
_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


class PromptTemplate:
    """An immutable prompt template.

    Every ``format`` call is independent.  Rendering is all-or-nothing: if
    any placeholder lacks a binding a :class:`TemplateError` is raised and no
    partial text is produced.
    """

    __slots__ = ("_template", "_placeholders")

    def __init__(self, template: str) -> None:
        self._template = template
        self._placeholders = tuple(
            dict.fromkeys(m.group(1) for m in _PLACEHOLDER.finditer(template))
        )

    @property
    def template(self) -> str:
        return self._template

    @property
    def placeholders(self) -> tuple[str, ...]:
        """Identifiers referenced by the template, in order of first use."""
        return self._placeholders

    def format(self, *args: Any, **kwargs: Any) -> str:
        """Render the template.

        Accepts a single mapping, a flat list of alternating name/value
        pairs, keyword bindings, or a mapping plus keywords (keywords win).
        """
        if len(args) == 1 and isinstance(args[0], Mapping):
            bindings = dict(args[0])
        else:
            bindings = self._pairs_to_bindings(args)
        bindings.update(kwargs)
        return self._render(bindings)

    # ---- Private helpers ---------------------------------------------------

    @staticmethod
    def _pairs_to_bindings(pairs: tuple[Any, ...]) -> dict[str, Any]:
        if len(pairs) % 2 != 0:
            raise TemplateError("Variables must be provided as key-value pairs")
        bindings: dict[str, Any] = {}
        for i in range(0, len(pairs), 2):
            key = pairs[i]
            if not isinstance(key, str):
                raise TemplateError("Variable name must be a string")
            bindings[key] = pairs[i + 1]
        return bindings

    def _render(self, bindings: Mapping[str, Any]) -> str:
        for name in self._placeholders:
            if name not in bindings:
                raise TemplateError(f"Missing variable: {name}")
        if not self._placeholders:
            return self._template
        return _PLACEHOLDER.sub(lambda m: str(bindings[m.group(1)]), self._template)

    def __repr__(self) -> str:
        return f"PromptTemplate({self._template!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PromptTemplate):
            return NotImplemented
        return self._template == other._template

    def __hash__(self) -> int:
        return hash(self._template)
