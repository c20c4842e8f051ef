"""In-memory repository implementation."""

import threading

import structlog

from memory_graph.errors import ConflictError, EntityReferenceError, NotFoundError
from memory_graph.models import (
    Entity,
    EntityChanges,
    LabelMatchMode,
    Relationship,
    RelationshipSelector,
    Subgraph,
)
from memory_graph.repository import Repository
from memory_graph.traversal import bounded_walk

logger = structlog.get_logger()


class InMemoryRepository(Repository):
    """Dictionary-backed graph store.

    Entities are kept in insertion order and relationships in creation order.
    Every value handed in or out is copied, so callers never share state with the store.
    """

    def __init__(self) -> None:
        self.entities: dict[str, Entity] = {}
        self.relationships: list[Relationship] = []
        self._lock = threading.RLock()

    def find_by_name(self, name: str) -> Entity | None:
        with self._lock:
            entity = self.entities.get(name)
            return entity.copy() if entity else None

    def create(self, entities: list[Entity]) -> list[Entity]:
        with self._lock:
            existing = [entity.name for entity in entities if entity.name in self.entities]
            if existing:
                logger.debug("Entity names already taken", names=existing)
                raise ConflictError(existing)
            for entity in entities:
                self.entities[entity.name] = entity.copy()
            logger.debug("Entities stored", count=len(entities))
            return [entity.copy() for entity in entities]

    def update(self, name: str, changes: EntityChanges) -> Entity:
        with self._lock:
            entity = self.entities.get(name)
            if entity is None:
                raise NotFoundError(name)
            if changes.labels is not None:
                entity.labels = list(changes.labels)
            if changes.properties is not None:
                entity.properties = dict(changes.properties)
            if changes.observations is not None:
                entity.observations = list(changes.observations)
            return entity.copy()

    def delete(self, names: set[str]) -> int:
        with self._lock:
            deleted = [name for name in names if name in self.entities]
            for name in deleted:
                del self.entities[name]
            removed = set(deleted)
            self.relationships = [
                relationship
                for relationship in self.relationships
                if relationship.from_ not in removed and relationship.to not in removed
            ]
            logger.debug("Entities removed", count=len(deleted))
            return len(deleted)

    def create_relationships(self, relationships: list[Relationship]) -> list[Relationship]:
        with self._lock:
            missing = []
            for relationship in relationships:
                for endpoint in (relationship.from_, relationship.to):
                    if endpoint not in self.entities and endpoint not in missing:
                        missing.append(endpoint)
            if missing:
                raise EntityReferenceError(missing)
            for relationship in relationships:
                self.relationships.append(relationship.copy())
            return [relationship.copy() for relationship in relationships]

    def delete_relationships(self, selector: RelationshipSelector) -> int:
        with self._lock:
            kept = [relationship for relationship in self.relationships if not selector.matches(relationship)]
            count = len(self.relationships) - len(kept)
            self.relationships = kept
            return count

    def find_by_labels(self, labels: list[str], match_mode: LabelMatchMode = LabelMatchMode.ANY) -> list[Entity]:
        with self._lock:
            wanted = set(labels)
            if match_mode == LabelMatchMode.ALL:
                matches = [entity for entity in self.entities.values() if wanted.issubset(entity.labels)]
            else:
                matches = [entity for entity in self.entities.values() if wanted.intersection(entity.labels)]
            return [entity.copy() for entity in matches]

    def find_relationships(self, selector: RelationshipSelector) -> list[Relationship]:
        with self._lock:
            return [relationship.copy() for relationship in self.relationships if selector.matches(relationship)]

    def traverse(self, root: str, depth: int, type_filter: str | None = None) -> Subgraph:
        with self._lock:
            return bounded_walk(
                root,
                depth,
                outbound=self._outbound,
                resolve=self._resolve,
                relationship_filter=type_filter,
            )

    def _outbound(self, name: str) -> list[Relationship]:
        return [relationship.copy() for relationship in self.relationships if relationship.from_ == name]

    def _resolve(self, name: str) -> Entity | None:
        entity = self.entities.get(name)
        return entity.copy() if entity else None
