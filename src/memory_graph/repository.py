"""Repository interface for memory graph storage."""

from abc import ABC, abstractmethod

from memory_graph.models import (
    Entity,
    EntityChanges,
    LabelMatchMode,
    Relationship,
    RelationshipSelector,
    Subgraph,
)


class Repository(ABC):
    """Abstract base class for graph stores used by the memory service.

    Implementations raise ConflictError, EntityReferenceError or NotFoundError for
    store-level integrity failures and PortError (or PortTimeoutError) for faults.
    """

    @abstractmethod
    def find_by_name(self, name: str) -> Entity | None:
        """Return the entity with the given name, or None."""
        pass

    @abstractmethod
    def create(self, entities: list[Entity]) -> list[Entity]:
        """Create entities. Fails as a whole if any name already exists."""
        pass

    @abstractmethod
    def update(self, name: str, changes: EntityChanges) -> Entity:
        """Replace the given fields of an entity and return the stored result."""
        pass

    @abstractmethod
    def delete(self, names: set[str]) -> int:
        """Delete entities and every relationship touching them.

        Returns:
            Number of entities deleted
        """
        pass

    @abstractmethod
    def create_relationships(self, relationships: list[Relationship]) -> list[Relationship]:
        """Create relationships between existing entities."""
        pass

    @abstractmethod
    def delete_relationships(self, selector: RelationshipSelector) -> int:
        """Delete matching relationships and return how many were removed."""
        pass

    @abstractmethod
    def find_by_labels(self, labels: list[str], match_mode: LabelMatchMode = LabelMatchMode.ANY) -> list[Entity]:
        """List entities carrying any (or all) of the labels."""
        pass

    @abstractmethod
    def find_relationships(self, selector: RelationshipSelector) -> list[Relationship]:
        """List matching relationships."""
        pass

    @abstractmethod
    def traverse(self, root: str, depth: int, type_filter: str | None = None) -> Subgraph:
        """Walk outbound relationships from root.

        Must follow the bounded_walk contract: at most `depth` hops, only edges of
        `type_filter` when given, each entity once, root excluded, empty for an
        unknown root.
        """
        pass
