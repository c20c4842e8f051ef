"""Graph traversal commands for memory graph CLI."""

from cyclopts import App

from memory_graph.models import Subgraph

graph_app = App(name="graph", help="Explore the graph around an entity")


def _print_subgraph(root: str, subgraph: Subgraph) -> None:
    if not subgraph.entities:
        print(f"Nothing reachable from {root}")
        return

    print(f"Reachable from {root}:\n")
    for relationship in subgraph.relationships:
        print(f"  {relationship.from_} --[{relationship.type}]--> {relationship.to}")


@graph_app.command
def related(root: str, depth: int = 1, type: str | None = None) -> None:
    """Show entities reachable from root within depth hops."""
    from memory_graph.cli import get_service

    subgraph = get_service().find_related_entities(root, depth, type)
    _print_subgraph(root, subgraph)


@graph_app.command
def meta(type: str | None = None) -> None:
    """Show everything attached to the graph root entity."""
    from memory_graph.cli import get_service
    from memory_graph.service import GRAPH_ROOT

    subgraph = get_service().get_graph_meta(type)
    _print_subgraph(GRAPH_ROOT, subgraph)
