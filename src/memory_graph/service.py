"""Memory service: validated operations over a graph repository."""

from collections.abc import Callable, Iterable
from concurrent.futures import CancelledError
from typing import TypeVar

import structlog

from memory_graph import observations as editor
from memory_graph.config import MemoryConfig
from memory_graph.errors import MemoryGraphError, NotFoundError, PortError, PortTimeoutError, ValidationError
from memory_graph.models import (
    Entity,
    EntityChanges,
    EntityUpdate,
    LabelMatchMode,
    ObservationsUpdate,
    Relationship,
    RelationshipSelector,
    Subgraph,
    is_snake_case,
    name_problems,
    normalize_labels,
    property_problems,
    validate_name,
)
from memory_graph.repository import Repository
from memory_graph.traversal import restrict_subgraph, validate_depth

logger = structlog.get_logger()

T = TypeVar("T")

# Well-known entity every graph-level metadata entry hangs off
GRAPH_ROOT = "tech:tool:memory_graph"
GRAPH_META_DEPTH = 5


def _count_operations(*values: object) -> int:
    return sum(value is not None for value in values)


def _string_list_problems(values: object, what: str) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return [f"{what} must be a list of strings"]
    if any(not isinstance(value, str) for value in values):
        return [f"{what} must be strings"]
    return []


def _label_problems(labels: Iterable[object]) -> list[str]:
    if any(not isinstance(label, str) or not label.strip() for label in labels):
        return ["Labels must be non-empty strings"]
    return []


class MemoryService:
    """Entity, relationship, observation and traversal operations.

    The service keeps no state of its own: every call validates its input, then
    talks to the repository it was given. Validation always happens before the
    first repository write.
    """

    def __init__(self, repository: Repository, config: MemoryConfig | None = None) -> None:
        """Initialize memory service.

        Args:
            repository: Repository implementation used for every operation
            config: Memory settings (default label, default project)
        """
        self.repository = repository
        self.config = config or MemoryConfig()

    def _call(self, operation: str, func: Callable[..., T], *args: object) -> T:
        """Run a repository call, mapping foreign failures to PortError."""
        try:
            return func(*args)
        except MemoryGraphError:
            raise
        except (TimeoutError, CancelledError) as e:
            logger.error("Repository call timed out", operation=operation, error=str(e))
            raise PortTimeoutError(f"{operation} timed out: {e}") from e
        except Exception as e:
            logger.error("Repository call failed", operation=operation, error=str(e))
            raise PortError(f"{operation} failed: {e}") from e

    # Entities

    def _prepare_entity(self, entity: Entity) -> Entity:
        """Validate an entity input and return the entity to store."""
        problems = name_problems(entity.name)
        labels = list(entity.labels or [])
        problems.extend(_label_problems(labels))
        labels = normalize_labels(labels)
        if self.config.default_label and self.config.default_label not in labels:
            labels.append(self.config.default_label)
        if not labels:
            problems.append(f"Entity '{entity.name}' must have at least one label")
        observations = entity.observations if entity.observations is not None else []
        problems.extend(_string_list_problems(observations, "Observations"))
        properties = entity.properties if entity.properties is not None else {}
        problems.extend(property_problems(properties))
        if problems:
            raise ValidationError(problems, subject=str(entity.name) or "<unnamed>")
        return Entity(
            name=entity.name,
            labels=labels,
            observations=list(observations),
            properties=dict(properties),
        )

    def create_entities(self, entities: list[Entity]) -> list[Entity]:
        """Create entities, all or nothing.

        Raises:
            ValidationError: If any entity is malformed; nothing is created
            ConflictError: If any name already exists
        """
        logger.info("Creating entities", count=len(entities))
        prepared = []
        seen: set[str] = set()
        for entity in entities:
            candidate = self._prepare_entity(entity)
            if candidate.name in seen:
                raise ValidationError("Duplicate entity name in batch", subject=candidate.name)
            seen.add(candidate.name)
            prepared.append(candidate)

        if not prepared:
            return []

        created = self._call("create", self.repository.create, prepared)
        logger.info("Entities created", count=len(created))
        return created

    def get_entity(self, name: str) -> Entity | None:
        """Return the named entity, or None if it does not exist."""
        validate_name(name)
        logger.debug("Getting entity", name=name)
        return self._call("find_by_name", self.repository.find_by_name, name)

    def _require_entity(self, name: str) -> Entity:
        entity = self._call("find_by_name", self.repository.find_by_name, name)
        if entity is None:
            raise NotFoundError(name)
        return entity

    def _validate_update(self, update: EntityUpdate) -> None:
        problems = []
        if update.labels is not None:
            if _count_operations(update.labels.add, update.labels.remove) > 1:
                problems.append("Conflicting operations for labels")
            for values in (update.labels.add, update.labels.remove):
                if values is not None:
                    problems.extend(_string_list_problems(values, "Labels") or _label_problems(values))
        if update.properties is not None:
            props = update.properties
            if _count_operations(props.add, props.remove, props.set) > 1:
                problems.append("Conflicting operations for properties")
            for values in (props.add, props.set):
                if values is not None:
                    problems.extend(property_problems(values))
            if props.remove is not None:
                problems.extend(_string_list_problems(props.remove, "Property keys"))
        if update.observations is not None:
            obs = update.observations
            if _count_operations(obs.add, obs.remove, obs.set) > 1:
                problems.append("Conflicting operations for observations")
            for values in (obs.add, obs.remove, obs.set):
                if values is not None:
                    problems.extend(_string_list_problems(values, "Observations"))
        if problems:
            raise ValidationError(problems)

    def _next_observations(self, current: list[str], update: ObservationsUpdate) -> list[str]:
        if update.set is not None:
            return editor.set_observations(current, update.set)
        if update.add is not None:
            return editor.add_observations(current, update.add)
        if update.remove is not None:
            return editor.remove_observations(current, update.remove)
        return list(current)

    def update_entity(self, name: str, update: EntityUpdate) -> Entity:
        """Merge a partial update into an existing entity.

        Raises:
            ValidationError: If the update is malformed or would leave the entity without labels
            NotFoundError: If the entity does not exist
        """
        validate_name(name)
        try:
            self._validate_update(update)
        except ValidationError as e:
            raise ValidationError(e.problems, subject=name) from None
        logger.info("Updating entity", name=name)

        entity = self._require_entity(name)
        changes = EntityChanges()

        if update.labels is not None:
            labels = list(entity.labels)
            if update.labels.add is not None:
                labels = normalize_labels(labels + list(update.labels.add))
            elif update.labels.remove is not None:
                labels = [label for label in labels if label not in update.labels.remove]
            if not labels:
                raise ValidationError(f"Entity '{name}' must have at least one label", subject=name)
            changes.labels = labels

        if update.properties is not None:
            props = update.properties
            if props.set is not None:
                changes.properties = dict(props.set)
            elif props.add is not None:
                changes.properties = {**entity.properties, **props.add}
            elif props.remove is not None:
                changes.properties = {k: v for k, v in entity.properties.items() if k not in props.remove}

        if update.observations is not None:
            changes.observations = self._next_observations(entity.observations, update.observations)

        if changes == EntityChanges():
            logger.debug("Nothing to update", name=name)
            return entity

        updated = self._call("update", self.repository.update, name, changes)
        logger.info("Entity updated", name=name)
        return updated

    def delete_entities(self, names: Iterable[str]) -> int:
        """Delete entities and their relationships.

        Returns:
            Number of entities that existed and were deleted
        """
        names = set(names)
        for name in names:
            validate_name(name)
        logger.info("Deleting entities", names=sorted(names), count=len(names))
        if not names:
            return 0
        count = self._call("delete", self.repository.delete, names)
        logger.info("Entities deleted", count=count)
        return count

    def find_entities_by_labels(
        self, labels: Iterable[str], match_mode: LabelMatchMode | str = LabelMatchMode.ANY
    ) -> list[Entity]:
        """List entities carrying any (or all) of the labels."""
        labels = list(labels)
        if not labels:
            raise ValidationError("At least one label is required")
        problems = _label_problems(labels)
        if problems:
            raise ValidationError(problems)
        try:
            mode = LabelMatchMode(match_mode)
        except ValueError:
            raise ValidationError(f"Unknown label match mode '{match_mode}'") from None
        logger.info("Finding entities by labels", labels=labels, match_mode=mode.value)
        return self._call("find_by_labels", self.repository.find_by_labels, labels, mode)

    # Observations

    def _edit_observations(
        self, name: str, edit: Callable[[list[str], list[str]], list[str]], observations: list[str]
    ) -> Entity:
        validate_name(name)
        problems = _string_list_problems(observations, "Observations")
        if problems:
            raise ValidationError(problems, subject=name)
        entity = self._require_entity(name)
        next_observations = edit(entity.observations, list(observations))
        logger.debug(
            "Rewriting observations",
            name=name,
            before=len(entity.observations),
            after=len(next_observations),
        )
        return self._call("update", self.repository.update, name, EntityChanges(observations=next_observations))

    def set_observations(self, name: str, observations: list[str]) -> Entity:
        """Replace all observations of an entity."""
        logger.info("Setting observations", name=name, count=len(observations))
        return self._edit_observations(name, editor.set_observations, observations)

    def add_observations(self, name: str, observations: list[str]) -> Entity:
        """Append observations to an entity; duplicates are kept."""
        logger.info("Adding observations", name=name, count=len(observations))
        return self._edit_observations(name, editor.add_observations, observations)

    def remove_observations(self, name: str, observations: list[str]) -> Entity:
        """Remove every occurrence of the given observations."""
        logger.info("Removing observations", name=name, count=len(observations))
        return self._edit_observations(name, editor.remove_observations, observations)

    def remove_all_observations(self, name: str) -> Entity:
        """Clear all observations of an entity."""
        logger.info("Removing all observations", name=name)
        return self._edit_observations(name, editor.remove_all_observations, [])

    # Relationships

    def _relationship_problems(self, relationship: Relationship) -> list[str]:
        problems = []
        for endpoint in (relationship.from_, relationship.to):
            problems.extend(name_problems(endpoint))
        if not isinstance(relationship.type, str) or not relationship.type:
            problems.append("Relationship type cannot be empty")
        elif not is_snake_case(relationship.type):
            problems.append(f"Relationship type '{relationship.type}' is not in snake_case format")
        problems.extend(property_problems(relationship.properties if relationship.properties is not None else {}))
        return problems

    def _validate_selector(self, selector: RelationshipSelector) -> None:
        problems = []
        for endpoint in (selector.from_, selector.to):
            if endpoint is not None:
                problems.extend(name_problems(endpoint))
        if selector.type is not None and (not isinstance(selector.type, str) or not selector.type):
            problems.append("Relationship type cannot be empty")
        if problems:
            raise ValidationError(problems)

    def create_relationships(self, relationships: list[Relationship]) -> list[Relationship]:
        """Create relationships between existing entities.

        Raises:
            ValidationError: If any relationship is malformed; nothing is created
            EntityReferenceError: If the store does not know an endpoint
        """
        logger.info("Creating relationships", count=len(relationships))
        prepared = []
        for relationship in relationships:
            problems = self._relationship_problems(relationship)
            if problems:
                subject = f"{relationship.from_} -[{relationship.type}]-> {relationship.to}"
                raise ValidationError(problems, subject=subject)
            prepared.append(
                Relationship(
                    from_=relationship.from_,
                    to=relationship.to,
                    type=relationship.type,
                    properties=dict(relationship.properties or {}),
                )
            )

        if not prepared:
            return []

        created = self._call("create_relationships", self.repository.create_relationships, prepared)
        logger.info("Relationships created", count=len(created))
        return created

    def delete_relationships(self, selector: RelationshipSelector) -> int:
        """Delete the relationships matching a selector.

        Raises:
            ValidationError: If the selector is empty or malformed
        """
        if selector.is_empty():
            raise ValidationError("Relationship selector needs at least one of from, to or type")
        self._validate_selector(selector)
        logger.info("Deleting relationships", from_=selector.from_, to=selector.to, type=selector.type)
        count = self._call("delete_relationships", self.repository.delete_relationships, selector)
        logger.info("Relationships deleted", count=count)
        return count

    def find_relationships(self, selector: RelationshipSelector) -> list[Relationship]:
        """List the relationships matching a selector."""
        self._validate_selector(selector)
        logger.info("Finding relationships", from_=selector.from_, to=selector.to, type=selector.type)
        return self._call("find_relationships", self.repository.find_relationships, selector)

    # Traversal

    def find_related_entities(self, root: str, depth: int, relationship_filter: str | None = None) -> Subgraph:
        """Return entities reachable from root over outbound relationships.

        Args:
            root: Entity to start from; it is never part of the result
            depth: Maximum number of hops, 1 to 5
            relationship_filter: Only follow relationships of this type

        Raises:
            ValidationError: If root is empty, depth out of range or the filter empty
        """
        validate_name(root)
        validate_depth(depth)
        if relationship_filter is not None and (not isinstance(relationship_filter, str) or not relationship_filter):
            raise ValidationError("Relationship filter cannot be empty")
        logger.info("Finding related entities", root=root, depth=depth, relationship_filter=relationship_filter)

        subgraph = self._call("traverse", self.repository.traverse, root, depth, relationship_filter)
        result = restrict_subgraph(subgraph, root)
        logger.info("Related entities found", root=root, count=len(result.entities))
        return result

    def get_graph_meta(self, relationship_filter: str | None = None) -> Subgraph:
        """Return everything reachable from the graph root within five hops."""
        return self.find_related_entities(GRAPH_ROOT, GRAPH_META_DEPTH, relationship_filter)
