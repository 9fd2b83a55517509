"""Placeholder expansion for command templates.

A placeholder token is the text between a literal ``{{`` and the next ``}}``.
The key is that text with surrounding whitespace removed. Expansion is a
single left-to-right pass: substituted values are copied verbatim and never
scanned again, unknown keys leave their token untouched, and an unterminated
``{{`` is plain text.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

OPEN = "{{"
CLOSE = "}}"


def iter_tokens(template: str) -> Iterator[tuple[int, int, str]]:
    """Yield ``(start, end, key)`` for every placeholder token in order.

    ``template[start:end]`` is the whole token including delimiters.
    """
    cursor = 0
    while True:
        start = template.find(OPEN, cursor)
        if start == -1:
            return
        close = template.find(CLOSE, start + len(OPEN))
        if close == -1:
            return
        end = close + len(CLOSE)
        yield start, end, template[start + len(OPEN) : close].strip()
        cursor = end


def placeholders(template: str) -> list[str]:
    """Return the distinct placeholder keys of a template, in first-seen order."""
    seen: dict[str, None] = {}
    for _, _, key in iter_tokens(template):
        seen.setdefault(key, None)
    return list(seen)


def expand(template: str, values: Mapping[str, str]) -> tuple[str, bool]:
    """Expand placeholder tokens against a value map.

    Args:
        template: Raw template text.
        values: Mapping from placeholder key to literal replacement.

    Returns:
        Tuple of (result, complete) where complete is True iff every token
        found in the template had a value.
    """
    parts: list[str] = []
    cursor = 0
    complete = True

    for start, end, key in iter_tokens(template):
        parts.append(template[cursor:start])
        if key in values:
            parts.append(values[key])
        else:
            complete = False
            parts.append(template[start:end])
        cursor = end

    parts.append(template[cursor:])
    return "".join(parts), complete


def missing_keys(template: str, values: Mapping[str, str]) -> list[str]:
    """Return the placeholder keys of a template that have no value."""
    return [key for key in placeholders(template) if key not in values]
