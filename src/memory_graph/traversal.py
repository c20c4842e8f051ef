"""Bounded breadth-first traversal over outbound relationships."""

from collections.abc import Callable, Iterable

import structlog

from memory_graph.errors import ValidationError
from memory_graph.models import Entity, Relationship, Subgraph

logger = structlog.get_logger()

MIN_DEPTH = 1
MAX_DEPTH = 5


def validate_depth(depth: object) -> int:
    """Check that a traversal depth is an integer within [MIN_DEPTH, MAX_DEPTH].

    Raises:
        ValidationError: If the depth is not an integer or out of range
    """
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ValidationError(f"Traversal depth must be an integer, got {depth!r}")
    if not MIN_DEPTH <= depth <= MAX_DEPTH:
        raise ValidationError(f"Traversal depth '{depth}' is out of range ({MIN_DEPTH}-{MAX_DEPTH})")
    return depth


def bounded_walk(
    root: str,
    depth: int,
    outbound: Callable[[str], Iterable[Relationship]],
    resolve: Callable[[str], Entity | None],
    relationship_filter: str | None = None,
) -> Subgraph:
    """Walk outbound relationships from root, at most `depth` hops.

    Only relationships whose type equals `relationship_filter` are followed when
    a filter is given. Each entity is discovered at most once, so cycles terminate.
    The root is never part of the result; an unknown root yields an empty subgraph.
    Relationships pointing at entities that `resolve` cannot find are skipped.

    Args:
        root: Name of the entity to start from
        depth: Maximum number of hops
        outbound: Returns the outbound relationships of an entity
        resolve: Returns the entity with the given name, or None
        relationship_filter: Relationship type to follow exclusively

    Returns:
        Discovered entities in BFS order and the relationships that discovered them
    """
    result = Subgraph()
    if resolve(root) is None:
        logger.debug("Traversal root not found", root=root)
        return result

    visited = {root}
    frontier = [root]
    for hop in range(1, depth + 1):
        next_frontier = []
        for name in frontier:
            for relationship in outbound(name):
                if relationship_filter is not None and relationship.type != relationship_filter:
                    continue
                if relationship.to in visited:
                    continue
                entity = resolve(relationship.to)
                if entity is None:
                    continue
                visited.add(relationship.to)
                result.entities.append(entity)
                result.relationships.append(relationship)
                next_frontier.append(relationship.to)
        logger.debug("Traversal hop completed", root=root, hop=hop, discovered=len(next_frontier))
        if not next_frontier:
            break
        frontier = next_frontier

    return result


def restrict_subgraph(subgraph: Subgraph, root: str) -> Subgraph:
    """Drop the root and repeated entities from a subgraph returned by a store.

    Relationships are kept only when they end at a kept entity.
    """
    seen = {root}
    entities = []
    for entity in subgraph.entities:
        if entity.name in seen:
            continue
        seen.add(entity.name)
        entities.append(entity)
    kept = {entity.name for entity in entities}
    relationships = [relationship for relationship in subgraph.relationships if relationship.to in kept]
    return Subgraph(entities=entities, relationships=relationships)
