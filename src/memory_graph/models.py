"""Data models for the memory graph."""

import copy
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from memory_graph.errors import ValidationError

PropertyValue = Union[str, int, float, bool]

SNAKE_CASE = re.compile(r"[a-z0-9_]+")


class LabelMatchMode(str, Enum):
    """How a label query matches entity labels."""

    ANY = "any"
    ALL = "all"


@dataclass
class Entity:
    """Represents a named node with labels, observations and properties."""

    name: str
    labels: list[str] = field(default_factory=list)
    observations: list[str] = field(default_factory=list)
    properties: dict[str, PropertyValue] = field(default_factory=dict)

    def copy(self) -> "Entity":
        return copy.deepcopy(self)


@dataclass
class Relationship:
    """Represents a directed, typed edge between two entities."""

    from_: str
    to: str
    type: str = "relates_to"
    properties: dict[str, PropertyValue] = field(default_factory=dict)

    def copy(self) -> "Relationship":
        return copy.deepcopy(self)


@dataclass
class RelationshipSelector:
    """Selects relationships by endpoint and type; unset fields match anything."""

    from_: str | None = None
    to: str | None = None
    type: str | None = None

    def is_empty(self) -> bool:
        return self.from_ is None and self.to is None and self.type is None

    def matches(self, relationship: Relationship) -> bool:
        return (
            (self.from_ is None or relationship.from_ == self.from_)
            and (self.to is None or relationship.to == self.to)
            and (self.type is None or relationship.type == self.type)
        )


@dataclass
class Subgraph:
    """Entities reached by a traversal and the relationships used to reach them."""

    entities: list[Entity] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)

    def names(self) -> list[str]:
        return [entity.name for entity in self.entities]


@dataclass
class LabelsUpdate:
    add: list[str] | None = None
    remove: list[str] | None = None


@dataclass
class PropertiesUpdate:
    add: dict[str, PropertyValue] | None = None
    remove: list[str] | None = None
    set: dict[str, PropertyValue] | None = None


@dataclass
class ObservationsUpdate:
    add: list[str] | None = None
    remove: list[str] | None = None
    set: list[str] | None = None


@dataclass
class EntityUpdate:
    """Partial patch applied by update_entity.

    Each section accepts at most one operation.
    """

    labels: LabelsUpdate | None = None
    properties: PropertiesUpdate | None = None
    observations: ObservationsUpdate | None = None


@dataclass
class EntityChanges:
    """Full replacement values written through the repository.

    A field left as None is not touched.
    """

    labels: list[str] | None = None
    properties: dict[str, PropertyValue] | None = None
    observations: list[str] | None = None


def is_snake_case(value: str) -> bool:
    """Check that a string only holds lowercase letters, digits and underscores."""
    return isinstance(value, str) and SNAKE_CASE.fullmatch(value) is not None


def name_problems(name: object) -> list[str]:
    """Return the problems that make a value unusable as an entity name."""
    if not isinstance(name, str):
        return [f"Entity name must be a string, got {type(name).__name__}"]
    if not name.strip():
        return ["Entity name cannot be empty"]
    if name != name.strip():
        return [f"Entity name '{name}' has leading or trailing whitespace"]
    if any(not c.isprintable() for c in name):
        return [f"Entity name '{name}' contains control characters"]
    return []


def validate_name(name: object) -> str:
    """Validate an entity name.

    Raises:
        ValidationError: If the name is not a non-empty printable string
    """
    problems = name_problems(name)
    if problems:
        raise ValidationError(problems)
    return name  # type: ignore[return-value]


def property_problems(properties: object) -> list[str]:
    """Return the problems with a property mapping."""
    if not isinstance(properties, dict):
        return ["Properties must be a mapping"]
    problems = []
    for key, value in properties.items():
        if not isinstance(key, str) or not key:
            problems.append(f"Property key {key!r} must be a non-empty string")
        elif not isinstance(value, (str, int, float, bool)):
            problems.append(f"Property '{key}' has unsupported value type {type(value).__name__}")
    return problems


def normalize_labels(labels: list[str]) -> list[str]:
    """Drop duplicate labels, keeping the first occurrence."""
    return list(dict.fromkeys(labels))
