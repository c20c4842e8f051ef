"""Relationship management commands for memory graph CLI."""

from cyclopts import App

from memory_graph.models import Relationship, RelationshipSelector

relationship_app = App(name="relationship", help="Manage relationships between entities")


@relationship_app.command
def add(
    source: str,
    *targets: str,
    type: str = "relates_to",
    properties: str = "",
) -> None:
    """Add relationships from a source entity to target entities."""
    from memory_graph.cli import get_service, parse_properties

    props = parse_properties(properties)
    relationships = [Relationship(from_=source, to=target, type=type, properties=props) for target in targets]
    created = get_service().create_relationships(relationships)
    print(f"Added {len(created)} relationship(s) from {source}")


@relationship_app.command
def remove(
    source: str,
    *targets: str,
    type: str | None = None,
) -> None:
    """Remove relationships from a source entity, to the given targets if any."""
    from memory_graph.cli import get_service

    service = get_service()
    if targets:
        count = sum(
            service.delete_relationships(RelationshipSelector(from_=source, to=target, type=type))
            for target in targets
        )
    else:
        count = service.delete_relationships(RelationshipSelector(from_=source, type=type))
    print(f"Removed {count} relationship(s) from {source}")


@relationship_app.command(name="list")
def list_relationships(
    from_: str | None = None,
    to: str | None = None,
    type: str | None = None,
) -> None:
    """List relationships matching the given endpoints and type."""
    from memory_graph.cli import get_service

    relationships = get_service().find_relationships(RelationshipSelector(from_=from_, to=to, type=type))

    if not relationships:
        print("No relationships found")
        return

    print(f"Found {len(relationships)} relationship(s):\n")
    for relationship in relationships:
        print(f"  {relationship.from_} --[{relationship.type}]--> {relationship.to}")
