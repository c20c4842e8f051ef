"""Observation commands for memory graph CLI."""

from cyclopts import App

observation_app = App(name="observation", help="Edit the observations of an entity")


@observation_app.command
def set(name: str, *observations: str) -> None:
    """Replace all observations of an entity."""
    from memory_graph.cli import get_service

    entity = get_service().set_observations(name, list(observations))
    print(f"{entity.name} now has {len(entity.observations)} observation(s)")


@observation_app.command
def add(name: str, *observations: str) -> None:
    """Append observations to an entity."""
    from memory_graph.cli import get_service

    entity = get_service().add_observations(name, list(observations))
    print(f"Added {len(observations)} observation(s) to {entity.name}")


@observation_app.command
def remove(name: str, *observations: str) -> None:
    """Remove every occurrence of the given observations."""
    from memory_graph.cli import get_service

    entity = get_service().remove_observations(name, list(observations))
    print(f"{entity.name} now has {len(entity.observations)} observation(s)")


@observation_app.command
def clear(name: str) -> None:
    """Remove all observations of an entity."""
    from memory_graph.cli import get_service

    entity = get_service().remove_all_observations(name)
    print(f"Cleared observations of {entity.name}")
