"""YAML file repository implementation."""

import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import structlog
import yaml

from memory_graph.errors import PortError
from memory_graph.models import (
    Entity,
    EntityChanges,
    LabelMatchMode,
    Relationship,
    RelationshipSelector,
    Subgraph,
)
from memory_graph.repositories.memory import InMemoryRepository

logger = structlog.get_logger()

T = TypeVar("T")


class YamlFileRepository(InMemoryRepository):
    """Graph store persisted to a single YAML document.

    The document is reloaded before every call and written back after every
    mutation, so several processes can share one file one call at a time.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize YAML file repository.

        Args:
            path: Path of the graph document; created on first write
        """
        super().__init__()
        self.path = Path(path)
        logger.debug("Initializing YAML file repository", path=str(self.path))

    def _load(self) -> None:
        """Load the graph document into memory."""
        if not self.path.exists():
            logger.debug("Graph file does not exist, starting with an empty graph")
            self.entities = {}
            self.relationships = []
            return

        try:
            with open(self.path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load graph file", path=str(self.path), error=str(e))
            raise PortError(f"Failed to load graph from {self.path}: {e}") from e

        try:
            self.entities = {item["name"]: self._entity_from_dict(item) for item in data.get("entities") or []}
            self.relationships = [self._relationship_from_dict(item) for item in data.get("relationships") or []]
        except (KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed graph file", path=str(self.path), error=str(e))
            raise PortError(f"Malformed graph file {self.path}: {e}") from e
        logger.debug("Graph loaded", entities=len(self.entities), relationships=len(self.relationships))

    def _save(self) -> None:
        """Write the in-memory graph back to the document."""
        data = {
            "entities": [self._entity_to_dict(entity) for entity in self.entities.values()],
            "relationships": [self._relationship_to_dict(relationship) for relationship in self.relationships],
        }
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Dump to a sibling file, then rename it over the document
            with tempfile.NamedTemporaryFile(
                "w", dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_path = Path(f.name)
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
            os.replace(tmp_path, self.path)
        except (OSError, yaml.YAMLError) as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            logger.error("Failed to save graph file", path=str(self.path), error=str(e))
            raise PortError(f"Failed to save graph to {self.path}: {e}") from e
        logger.debug("Graph saved", path=str(self.path))

    def _entity_to_dict(self, entity: Entity) -> dict[str, Any]:
        return {
            "name": entity.name,
            "labels": list(entity.labels),
            "observations": list(entity.observations),
            "properties": dict(entity.properties),
        }

    def _entity_from_dict(self, item: dict[str, Any]) -> Entity:
        return Entity(
            name=str(item["name"]),
            labels=list(item.get("labels") or []),
            observations=list(item.get("observations") or []),
            properties=dict(item.get("properties") or {}),
        )

    def _relationship_to_dict(self, relationship: Relationship) -> dict[str, Any]:
        return {
            "from": relationship.from_,
            "to": relationship.to,
            "type": relationship.type,
            "properties": dict(relationship.properties),
        }

    def _relationship_from_dict(self, item: dict[str, Any]) -> Relationship:
        return Relationship(
            from_=str(item["from"]),
            to=str(item["to"]),
            type=str(item["type"]),
            properties=dict(item.get("properties") or {}),
        )

    def _read(self, operation: Callable[[], T]) -> T:
        with self._lock:
            self._load()
            return operation()

    def _write(self, operation: Callable[[], T]) -> T:
        with self._lock:
            self._load()
            result = operation()
            self._save()
            return result

    def find_by_name(self, name: str) -> Entity | None:
        return self._read(lambda: super(YamlFileRepository, self).find_by_name(name))

    def create(self, entities: list[Entity]) -> list[Entity]:
        return self._write(lambda: super(YamlFileRepository, self).create(entities))

    def update(self, name: str, changes: EntityChanges) -> Entity:
        return self._write(lambda: super(YamlFileRepository, self).update(name, changes))

    def delete(self, names: set[str]) -> int:
        return self._write(lambda: super(YamlFileRepository, self).delete(names))

    def create_relationships(self, relationships: list[Relationship]) -> list[Relationship]:
        return self._write(lambda: super(YamlFileRepository, self).create_relationships(relationships))

    def delete_relationships(self, selector: RelationshipSelector) -> int:
        return self._write(lambda: super(YamlFileRepository, self).delete_relationships(selector))

    def find_by_labels(self, labels: list[str], match_mode: LabelMatchMode = LabelMatchMode.ANY) -> list[Entity]:
        return self._read(lambda: super(YamlFileRepository, self).find_by_labels(labels, match_mode))

    def find_relationships(self, selector: RelationshipSelector) -> list[Relationship]:
        return self._read(lambda: super(YamlFileRepository, self).find_relationships(selector))

    def traverse(self, root: str, depth: int, type_filter: str | None = None) -> Subgraph:
        return self._read(lambda: super(YamlFileRepository, self).traverse(root, depth, type_filter))
