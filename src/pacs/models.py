"""Value types for pacs commands and environments.

Provides the Command and Environment records stored in a project, plus the
field validators shared by the registries.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

MAX_NAME_LENGTH = 256
MAX_TAG_LENGTH = 64


def validate_name(name: str, field_name: str = "name") -> None:
    """Validate a project, command or environment name.

    Args:
        name: The name string to validate.
        field_name: The field name for error messages.

    Raises:
        ValueError: If name is empty or exceeds max length.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{field_name} cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"{field_name} exceeds maximum length ({MAX_NAME_LENGTH})")


def validate_tag(tag: str, field_name: str = "tag") -> None:
    """Validate a tag.

    Args:
        tag: The tag string to validate.
        field_name: The field name for error messages.

    Raises:
        ValueError: If tag is empty, contains whitespace, or exceeds max length.
    """
    if not isinstance(tag, str) or not tag.strip():
        raise ValueError(f"{field_name} cannot be empty")
    if any(ch.isspace() for ch in tag):
        raise ValueError(f"{field_name} cannot contain whitespace: '{tag}'")
    if len(tag) > MAX_TAG_LENGTH:
        raise ValueError(f"{field_name} exceeds maximum length ({MAX_TAG_LENGTH})")


def validate_template(template: str) -> None:
    """Validate a command template.

    Raises:
        ValueError: If the template is empty or whitespace-only.
    """
    if not isinstance(template, str) or not template.strip():
        raise ValueError("Command cannot be empty")


def normalize_tags(tags: Iterable[str]) -> frozenset[str]:
    """Validate every tag and return them as a frozenset.

    Raises:
        ValueError: If any tag is invalid.
    """
    if isinstance(tags, str):
        tags = [tags]
    result = frozenset(tags)
    for tag in result:
        validate_tag(tag)
    return result


@dataclass(frozen=True)
class Command:
    """A named shell-command template.

    Attributes:
        name: Unique name within the owning project.
        template: Raw template text, possibly containing ``{{key}}`` tokens.
        tags: Free-form tags used for filtering only.
        cwd: Working directory used when the command is run.
    """

    name: str
    template: str
    tags: frozenset[str] = frozenset()
    cwd: str | None = None

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @property
    def sorted_tags(self) -> list[str]:
        return sorted(self.tags)


@dataclass
class Environment:
    """A named set of placeholder values.

    Attributes:
        name: Unique name within the owning project.
        values: Mapping from placeholder key to literal value.
    """

    name: str
    values: dict[str, str] = field(default_factory=dict)

    def sorted_items(self) -> list[tuple[str, str]]:
        """Return the value pairs ordered by key."""
        return sorted(self.values.items())


def validate_values(values: Mapping[str, str]) -> dict[str, str]:
    """Validate a placeholder value map and return a plain-dict copy.

    Raises:
        ValueError: If a key is empty or a key or value is not a string.
    """
    result: dict[str, str] = {}
    for key, value in values.items():
        if not isinstance(key, str) or not key.strip():
            raise ValueError("placeholder key cannot be empty")
        if key != key.strip():
            raise ValueError(f"placeholder key cannot have surrounding whitespace: '{key}'")
        if not isinstance(value, str):
            raise ValueError(f"value for '{key}' must be a string")
        result[key] = value
    return result
