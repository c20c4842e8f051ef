"""CLI for memory graph."""

import sys
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from memory_graph.config import Config, MemoryConfig, get_config
from memory_graph.config_commands import config_app
from memory_graph.errors import MemoryGraphError
from memory_graph.graph_commands import graph_app
from memory_graph.models import (
    Entity,
    EntityUpdate,
    LabelsUpdate,
    PropertiesUpdate,
    PropertyValue,
)
from memory_graph.observation_commands import observation_app
from memory_graph.project_commands import project_app
from memory_graph.projects import ProjectService
from memory_graph.relationship_commands import relationship_app
from memory_graph.repositories import InMemoryRepository, YamlFileRepository
from memory_graph.repository import Repository
from memory_graph.service import MemoryService
from memory_graph.task_commands import task_app
from memory_graph.tasks import TaskService

logger = structlog.get_logger()

app = App(
    help="Memory Graph - A knowledge graph memory for LLMs",
)

app.command(observation_app)
app.command(relationship_app)
app.command(graph_app)
app.command(task_app)
app.command(project_app)
app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_repository(config: Config | None = None) -> Repository:
    """Get the configured repository."""
    config = config or get_config()
    backend_type = config.backend

    if backend_type == "yaml":
        return YamlFileRepository(config.graph_path)
    elif backend_type == "memory":
        return InMemoryRepository()
    else:
        raise ValueError(f"Unknown backend: {backend_type}")


def get_service() -> MemoryService:
    """Get a memory service over the configured repository."""
    config = get_config()
    return MemoryService(get_repository(config), MemoryConfig.from_config(config))


def get_task_service() -> TaskService:
    """Get a task service over the configured repository."""
    return TaskService(get_service())


def get_project_service() -> ProjectService:
    """Get a project service over the configured repository."""
    return ProjectService(get_service())


def parse_list(value: str | None) -> list[str]:
    """Split a comma separated option into its non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _coerce(value: str) -> PropertyValue:
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def parse_properties(value: str | None) -> dict[str, PropertyValue]:
    """Parse `key=value` pairs separated by commas.

    Values that look like booleans or numbers are converted.
    """
    properties: dict[str, PropertyValue] = {}
    for item in parse_list(value):
        if "=" not in item:
            raise ValueError(f"Property '{item}' must be written as key=value")
        key, raw = item.split("=", 1)
        properties[key.strip()] = _coerce(raw.strip())
    return properties


def print_entity(entity: Entity) -> None:
    """Print an entity in a readable block."""
    print(f"Entity: {entity.name}")
    print(f"Labels: {', '.join(entity.labels)}")
    if entity.properties:
        print("Properties:")
        for key, value in entity.properties.items():
            print(f"  {key} = {value}")
    if entity.observations:
        print("Observations:")
        for observation in entity.observations:
            print(f"  - {observation}")


@app.command
def create(
    name: str,
    *observations: str,
    labels: str = "",
    properties: str = "",
) -> None:
    """Create a new entity."""
    service = get_service()
    entity = Entity(
        name=name,
        labels=parse_list(labels),
        observations=list(observations),
        properties=parse_properties(properties),
    )
    created = service.create_entities([entity])
    print(f"Created entity {created[0].name}")


@app.command
def get(name: str) -> None:
    """Show an entity by name."""
    service = get_service()
    entity = service.get_entity(name)
    if entity is None:
        print(f"Entity {name} not found")
        return
    print_entity(entity)


@app.command
def update(
    name: str,
    add_labels: str | None = None,
    remove_labels: str | None = None,
    set_properties: str | None = None,
    add_properties: str | None = None,
    remove_properties: str | None = None,
) -> None:
    """Update the labels or properties of an entity."""
    service = get_service()

    patch = EntityUpdate()
    if add_labels is not None or remove_labels is not None:
        patch.labels = LabelsUpdate(
            add=parse_list(add_labels) if add_labels is not None else None,
            remove=parse_list(remove_labels) if remove_labels is not None else None,
        )
    if set_properties is not None or add_properties is not None or remove_properties is not None:
        patch.properties = PropertiesUpdate(
            set=parse_properties(set_properties) if set_properties is not None else None,
            add=parse_properties(add_properties) if add_properties is not None else None,
            remove=parse_list(remove_properties) if remove_properties is not None else None,
        )

    entity = service.update_entity(name, patch)
    print(f"Updated entity {entity.name}")


@app.command
def delete(*names: str) -> None:
    """Delete one or more entities and their relationships."""
    service = get_service()
    count = service.delete_entities(names)
    print(f"Deleted {count} entity(ies)")


@app.command
def find(labels: str, match: Literal["any", "all"] = "any") -> None:
    """Find entities by label."""
    service = get_service()
    entities = service.find_entities_by_labels(parse_list(labels), match)

    print(f"Found {len(entities)} entity(ies):\n")
    for entity in entities:
        print(f"● {entity.name} [{', '.join(entity.labels)}]")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    try:
        app(tokens)
    except (MemoryGraphError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    app.meta()
