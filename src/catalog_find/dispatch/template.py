"""Render per-leaf shell commands from a ``%s`` placeholder template."""

from __future__ import annotations

from enum import IntEnum

from catalog_find.config import COMMAND_LENGTH
from catalog_find.errors import TemplateError

PLACEHOLDER = "%s"
MAX_PLACEHOLDERS = 4


class Arity(IntEnum):
    """Number of placeholder sites in a template."""

    ZERO = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4


class CommandTemplate:
    """Immutable command template with 0 to 4 ``%s`` sites.

    With no placeholder the leaf is appended single-quoted; otherwise the leaf
    is substituted into every site. ``%%`` stands for a literal percent sign.
    The template is split once here, so ``%`` characters inside a leaf are
    never interpreted.
    """

    __slots__ = ("_segments", "arity", "max_length", "template")

    def __init__(self, template: str, *, max_length: int = COMMAND_LENGTH) -> None:
        if not template or not template.strip():
            raise TemplateError("Empty command string")
        self.template = template
        self.max_length = max_length
        self._segments = _split_template(template)
        count = len(self._segments) - 1
        if count > MAX_PLACEHOLDERS:
            raise TemplateError(
                f"Too many formats in command template ({count}), maximum {MAX_PLACEHOLDERS}",
            )
        self.arity = Arity(count)

    def render(self, leaf: str) -> str:
        if "'" in leaf:
            raise TemplateError(f"Single quote detected in {leaf}")
        if self.arity is Arity.ZERO:
            rendered = f"{self._segments[0]} '{leaf}'"
        else:
            rendered = leaf.join(self._segments)
        if len(rendered) > self.max_length:
            raise TemplateError(
                f"Strings too long for command ({len(rendered)} > {self.max_length})",
            )
        return rendered

    def __repr__(self) -> str:
        return f"CommandTemplate({self.template!r}, arity={self.arity.value})"


def _split_template(template: str) -> tuple[str, ...]:
    segments: list[str] = []
    current: list[str] = []
    index = 0
    while index < len(template):
        char = template[index]
        if char != "%":
            current.append(char)
            index += 1
            continue
        following = template[index + 1 : index + 2]
        if following == "s":
            segments.append("".join(current))
            current = []
        elif following == "%":
            current.append("%")
        else:
            raise TemplateError(
                f"Wrong formats in command template {template!r} at offset {index}",
            )
        index += 2
    segments.append("".join(current))
    return tuple(segments)
