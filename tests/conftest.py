"""Shared fixtures for memory graph tests."""

import pytest

from memory_graph.config import MemoryConfig
from memory_graph.models import Entity, Relationship
from memory_graph.repositories import InMemoryRepository
from memory_graph.service import MemoryService
from memory_graph.tasks import TaskService


@pytest.fixture
def repository() -> InMemoryRepository:
    """Create an empty in-memory repository."""
    return InMemoryRepository()


@pytest.fixture
def service(repository: InMemoryRepository) -> MemoryService:
    """Create a memory service with the default configuration."""
    return MemoryService(repository, MemoryConfig())


@pytest.fixture
def task_service(service: MemoryService) -> TaskService:
    """Create a task service on top of the memory service."""
    return TaskService(service)


@pytest.fixture
def chain(service: MemoryService) -> MemoryService:
    """Create the chain a -> b -> c -> d -> e -> f -> g of depends_on relationships."""
    names = ["a", "b", "c", "d", "e", "f", "g"]
    service.create_entities([Entity(name=name, labels=["Node"]) for name in names])
    service.create_relationships(
        [Relationship(from_=source, to=target, type="depends_on") for source, target in zip(names, names[1:])]
    )
    return service
