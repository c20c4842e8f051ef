"""Repository implementations."""

from memory_graph.repositories.memory import InMemoryRepository
from memory_graph.repositories.yaml_file import YamlFileRepository

__all__ = ["InMemoryRepository", "YamlFileRepository"]
