"""Memory graph: entities, relationships and observations behind a repository port."""

from memory_graph.errors import (
    ConflictError,
    EntityReferenceError,
    MemoryGraphError,
    NotFoundError,
    PortError,
    PortTimeoutError,
    ValidationError,
)
from memory_graph.models import Entity, Relationship, RelationshipSelector, Subgraph
from memory_graph.projects import ProjectService
from memory_graph.service import MemoryService
from memory_graph.tasks import TaskService

__all__ = [
    "ConflictError",
    "Entity",
    "EntityReferenceError",
    "MemoryGraphError",
    "MemoryService",
    "NotFoundError",
    "PortError",
    "PortTimeoutError",
    "ProjectService",
    "Relationship",
    "RelationshipSelector",
    "Subgraph",
    "TaskService",
    "ValidationError",
]
