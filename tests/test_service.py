"""Tests for the memory service."""

from unittest.mock import MagicMock

import pytest

from memory_graph.config import MemoryConfig
from memory_graph.errors import (
    ConflictError,
    EntityReferenceError,
    NotFoundError,
    PortError,
    PortTimeoutError,
    ValidationError,
)
from memory_graph.models import (
    Entity,
    EntityUpdate,
    LabelsUpdate,
    ObservationsUpdate,
    PropertiesUpdate,
    Relationship,
    RelationshipSelector,
    Subgraph,
)
from memory_graph.repositories import InMemoryRepository
from memory_graph.repository import Repository
from memory_graph.service import GRAPH_ROOT, MemoryService

RUST = "tech:language:rust"


@pytest.fixture
def mock_repository() -> MagicMock:
    """Create a mock repository."""
    return MagicMock(spec=Repository)


@pytest.fixture
def mocked_service(mock_repository: MagicMock) -> MemoryService:
    """Create a memory service over the mock repository."""
    return MemoryService(mock_repository)


@pytest.fixture
def rust(service: MemoryService) -> MemoryService:
    """Create the rust entity."""
    service.create_entities([Entity(name=RUST, labels=["Memory", "Technology"])])
    return service


# Entities


def test_create_then_get_round_trip(service: MemoryService) -> None:
    """Test that a created entity reads back equal to its input."""
    entity = Entity(
        name="tech:tool:cargo",
        labels=["Memory", "Technology"],
        observations=["builds crates", "fast"],
        properties={"stars": 10, "stable": True, "version": "1.80", "ratio": 0.5},
    )
    service.create_entities([entity])
    assert service.get_entity(entity.name) == entity


def test_create_without_observations(rust: MemoryService) -> None:
    """Test that an entity created without observations has an empty list."""
    entity = rust.get_entity(RUST)
    assert entity is not None
    assert entity.observations == []
    assert set(entity.labels) == {"Memory", "Technology"}


def test_default_label_added(service: MemoryService) -> None:
    """Test that the configured default label is appended."""
    created = service.create_entities([Entity(name="test:entity", labels=["Test"])])
    assert created[0].labels == ["Test", "Memory"]


def test_empty_labels_get_default_label(service: MemoryService) -> None:
    """Test that the default label satisfies the at-least-one-label rule."""
    created = service.create_entities([Entity(name="test:entity")])
    assert created[0].labels == ["Memory"]


def test_empty_labels_without_default_label_fail(repository: InMemoryRepository) -> None:
    """Test that an entity without any label is rejected."""
    service = MemoryService(repository, MemoryConfig(default_label=None))
    with pytest.raises(ValidationError, match="at least one label") as exc_info:
        service.create_entities([Entity(name="test:entity")])
    assert exc_info.value.subject == "test:entity"
    assert repository.entities == {}


def test_create_is_all_or_nothing(service: MemoryService, repository: InMemoryRepository) -> None:
    """Test that one invalid entity prevents the whole batch."""
    with pytest.raises(ValidationError):
        service.create_entities([Entity(name="good", labels=["Node"]), Entity(name="", labels=["Node"])])
    assert repository.entities == {}


def test_create_rejects_duplicate_names_in_batch(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that a batch may not name the same entity twice."""
    with pytest.raises(ValidationError, match="Duplicate"):
        mocked_service.create_entities([Entity(name="a", labels=["X"]), Entity(name="a", labels=["Y"])])
    mock_repository.create.assert_not_called()


def test_create_rejects_non_scalar_properties(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that property values must be scalars."""
    with pytest.raises(ValidationError, match="unsupported value type"):
        mocked_service.create_entities([Entity(name="a", labels=["X"], properties={"tags": ["x"]})])
    mock_repository.create.assert_not_called()


def test_create_existing_name_conflicts(rust: MemoryService) -> None:
    """Test that creating an existing name is a conflict."""
    with pytest.raises(ConflictError):
        rust.create_entities([Entity(name=RUST, labels=["Technology"])])


def test_create_empty_batch_skips_repository(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that an empty batch does not reach the repository."""
    assert mocked_service.create_entities([]) == []
    mock_repository.create.assert_not_called()


def test_get_missing_entity_returns_none(service: MemoryService) -> None:
    """Test that looking up an absent entity is not an error."""
    assert service.get_entity("nope") is None


def test_get_entity_rejects_empty_name(service: MemoryService) -> None:
    """Test that an empty name is a validation error."""
    with pytest.raises(ValidationError):
        service.get_entity("")


def test_update_labels(rust: MemoryService) -> None:
    """Test adding and removing labels."""
    entity = rust.update_entity(RUST, EntityUpdate(labels=LabelsUpdate(add=["Language", "Technology"])))
    assert entity.labels == ["Memory", "Technology", "Language"]
    entity = rust.update_entity(RUST, EntityUpdate(labels=LabelsUpdate(remove=["Memory"])))
    assert entity.labels == ["Technology", "Language"]


def test_update_cannot_remove_every_label(rust: MemoryService) -> None:
    """Test that an entity keeps at least one label."""
    with pytest.raises(ValidationError, match="at least one label"):
        rust.update_entity(RUST, EntityUpdate(labels=LabelsUpdate(remove=["Memory", "Technology"])))
    assert rust.get_entity(RUST).labels == ["Memory", "Technology"]


def test_update_properties(rust: MemoryService) -> None:
    """Test set, add and remove on properties."""
    entity = rust.update_entity(RUST, EntityUpdate(properties=PropertiesUpdate(set={"year": 2015, "typed": True})))
    assert entity.properties == {"year": 2015, "typed": True}
    entity = rust.update_entity(RUST, EntityUpdate(properties=PropertiesUpdate(add={"year": 2010, "gc": False})))
    assert entity.properties == {"year": 2010, "typed": True, "gc": False}
    entity = rust.update_entity(RUST, EntityUpdate(properties=PropertiesUpdate(remove=["typed", "missing"])))
    assert entity.properties == {"year": 2010, "gc": False}


def test_update_observations(rust: MemoryService) -> None:
    """Test that observation edits go through the observation editor."""
    entity = rust.update_entity(RUST, EntityUpdate(observations=ObservationsUpdate(add=["fast", "safe"])))
    assert entity.observations == ["fast", "safe"]
    entity = rust.update_entity(RUST, EntityUpdate(observations=ObservationsUpdate(remove=["fast"])))
    assert entity.observations == ["safe"]


def test_update_conflicting_operations(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that two operations on one section are rejected before any repository call."""
    with pytest.raises(ValidationError, match="Conflicting operations for properties"):
        mocked_service.update_entity("a", EntityUpdate(properties=PropertiesUpdate(add={"x": 1}, remove=["y"])))
    with pytest.raises(ValidationError, match="Conflicting operations for observations"):
        mocked_service.update_entity("a", EntityUpdate(observations=ObservationsUpdate(add=["x"], set=[])))
    with pytest.raises(ValidationError, match="Conflicting operations for labels"):
        mocked_service.update_entity("a", EntityUpdate(labels=LabelsUpdate(add=["x"], remove=["y"])))
    mock_repository.find_by_name.assert_not_called()
    mock_repository.update.assert_not_called()


def test_update_missing_entity(service: MemoryService) -> None:
    """Test that updating an absent entity is NotFound."""
    with pytest.raises(NotFoundError):
        service.update_entity("nope", EntityUpdate(labels=LabelsUpdate(add=["X"])))


def test_empty_update_does_not_write(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that an empty patch only reads the entity."""
    mock_repository.find_by_name.return_value = Entity(name="a", labels=["X"])
    assert mocked_service.update_entity("a", EntityUpdate()) == Entity(name="a", labels=["X"])
    mock_repository.update.assert_not_called()


def test_delete_entities(service: MemoryService) -> None:
    """Test that deleting counts existing entities and detaches relationships."""
    service.create_entities([Entity(name=name, labels=["Node"]) for name in ("a", "b", "c")])
    service.create_relationships([Relationship(from_="a", to="b", type="depends_on")])
    assert service.delete_entities({"b", "missing"}) == 1
    assert service.get_entity("b") is None
    assert service.find_relationships(RelationshipSelector(from_="a")) == []


def test_find_entities_by_labels(service: MemoryService) -> None:
    """Test any and all label matching."""
    service.create_entities(
        [
            Entity(name="rust", labels=["Technology", "Language"]),
            Entity(name="cargo", labels=["Technology", "Tool"]),
            Entity(name="alice", labels=["Person"]),
        ]
    )
    any_match = service.find_entities_by_labels(["Language", "Tool"])
    assert [entity.name for entity in any_match] == ["rust", "cargo"]
    all_match = service.find_entities_by_labels(["Technology", "Language"], "all")
    assert [entity.name for entity in all_match] == ["rust"]


def test_find_entities_by_labels_validation(service: MemoryService) -> None:
    """Test that an empty label list or unknown mode is rejected."""
    with pytest.raises(ValidationError):
        service.find_entities_by_labels([])
    with pytest.raises(ValidationError, match="match mode"):
        service.find_entities_by_labels(["X"], "some")


# Observations


@pytest.mark.parametrize("observations", [[], ["one"], ["b", "a", "b"]])
def test_set_observations_round_trip(rust: MemoryService, observations: list[str]) -> None:
    """Test that set followed by get returns exactly the sequence."""
    rust.add_observations(RUST, ["previous"])
    rust.set_observations(RUST, observations)
    assert rust.get_entity(RUST).observations == observations


def test_add_observations_concatenates(rust: MemoryService) -> None:
    """Test that successive adds concatenate without deduplication."""
    rust.set_observations(RUST, ["base"])
    rust.add_observations(RUST, ["x", "y"])
    rust.add_observations(RUST, ["y", "z"])
    assert rust.get_entity(RUST).observations == ["base", "x", "y", "y", "z"]


def test_add_same_observation_twice(rust: MemoryService) -> None:
    """Test that adding the same observation twice keeps both."""
    rust.add_observations(RUST, ["fast"])
    rust.add_observations(RUST, ["fast"])
    assert rust.get_entity(RUST).observations == ["fast", "fast"]


def test_remove_observations_is_idempotent(rust: MemoryService) -> None:
    """Test that removing the same values twice matches removing once."""
    rust.set_observations(RUST, ["a", "b", "a", "c"])
    once = rust.remove_observations(RUST, ["a", "missing"]).observations
    twice = rust.remove_observations(RUST, ["a", "missing"]).observations
    assert once == twice == ["b", "c"]


def test_remove_all_observations(rust: MemoryService) -> None:
    """Test that clearing always leaves an empty sequence."""
    assert rust.remove_all_observations(RUST).observations == []
    rust.add_observations(RUST, ["a", "b"])
    assert rust.remove_all_observations(RUST).observations == []


def test_observation_edit_on_missing_entity(service: MemoryService) -> None:
    """Test that editing observations of an absent entity is NotFound."""
    with pytest.raises(NotFoundError):
        service.add_observations("nope", ["x"])


def test_observations_must_be_strings(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that non-string observations are rejected before any repository call."""
    with pytest.raises(ValidationError):
        mocked_service.add_observations("a", ["ok", 3])
    mock_repository.find_by_name.assert_not_called()


# Relationships


def test_create_relationships(service: MemoryService) -> None:
    """Test creating and finding relationships."""
    service.create_entities([Entity(name="a", labels=["X"]), Entity(name="b", labels=["X"])])
    created = service.create_relationships([Relationship(from_="a", to="b", type="depends_on", properties={"w": 1})])
    assert created == [Relationship(from_="a", to="b", type="depends_on", properties={"w": 1})]
    assert service.find_relationships(RelationshipSelector(type="depends_on")) == created


def test_create_relationships_keeps_parallel_edges(service: MemoryService) -> None:
    """Test that the same relationship may be created twice."""
    service.create_entities([Entity(name="a", labels=["X"]), Entity(name="b", labels=["X"])])
    rel = Relationship(from_="a", to="b", type="depends_on")
    service.create_relationships([rel])
    service.create_relationships([rel])
    assert len(service.find_relationships(RelationshipSelector(from_="a"))) == 2


def test_create_relationship_missing_endpoint(service: MemoryService) -> None:
    """Test that a missing endpoint surfaces as EntityReferenceError."""
    service.create_entities([Entity(name="a", labels=["X"])])
    with pytest.raises(EntityReferenceError) as exc_info:
        service.create_relationships([Relationship(from_="a", to="ghost", type="depends_on")])
    assert exc_info.value.missing == ["ghost"]


@pytest.mark.parametrize(
    "relationship",
    [
        Relationship(from_="", to="b", type="depends_on"),
        Relationship(from_="a", to=" b", type="depends_on"),
        Relationship(from_="a", to="b", type=""),
        Relationship(from_="a", to="b", type="DependsOn"),
        Relationship(from_="a", to="b", type="d\u00e9pend"),
        Relationship(from_="a", to="b", type="depends_on", properties={"x": None}),
    ],
)
def test_create_relationship_validation(
    mocked_service: MemoryService, mock_repository: MagicMock, relationship: Relationship
) -> None:
    """Test that malformed relationships never reach the repository."""
    with pytest.raises(ValidationError):
        mocked_service.create_relationships([relationship])
    mock_repository.create_relationships.assert_not_called()


def test_delete_relationships(service: MemoryService) -> None:
    """Test deleting relationships by selector."""
    service.create_entities([Entity(name=name, labels=["X"]) for name in ("a", "b", "c")])
    service.create_relationships(
        [
            Relationship(from_="a", to="b", type="depends_on"),
            Relationship(from_="a", to="c", type="blocks"),
        ]
    )
    assert service.delete_relationships(RelationshipSelector(from_="a", type="depends_on")) == 1
    assert service.find_relationships(RelationshipSelector(from_="a")) == [
        Relationship(from_="a", to="c", type="blocks")
    ]


def test_delete_relationships_requires_selector(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that an empty selector is rejected."""
    with pytest.raises(ValidationError, match="selector"):
        mocked_service.delete_relationships(RelationshipSelector())
    mock_repository.delete_relationships.assert_not_called()


# Traversal


def test_find_related_scenario(service: MemoryService) -> None:
    """Test that a filter on another type hides the related entity."""
    service.create_entities([Entity(name="a", labels=["X"]), Entity(name="b", labels=["X"])])
    service.create_relationships([Relationship(from_="a", to="b", type="depends_on")])
    assert service.find_related_entities("a", 1).names() == ["b"]
    assert service.find_related_entities("a", 1, "blocks").names() == []


@pytest.mark.parametrize("depth", [0, 6])
def test_find_related_depth_out_of_range(
    mocked_service: MemoryService, mock_repository: MagicMock, depth: int
) -> None:
    """Test that depth outside 1..5 fails before any traversal."""
    with pytest.raises(ValidationError):
        mocked_service.find_related_entities("a", depth)
    mock_repository.traverse.assert_not_called()


@pytest.mark.parametrize("depth", [1, 2, 3, 4, 5])
def test_find_related_depth_bounds(chain: MemoryService, depth: int) -> None:
    """Test that each valid depth reaches exactly depth hops."""
    names = chain.find_related_entities("a", depth).names()
    assert names == ["b", "c", "d", "e", "f", "g"][:depth]
    assert "a" not in names


def test_find_related_grows_with_depth(chain: MemoryService) -> None:
    """Test that results only grow as the depth increases."""
    previous: set[str] = set()
    for depth in range(1, 6):
        names = set(chain.find_related_entities("a", depth).names())
        assert previous <= names
        previous = names


def test_find_related_unknown_root(service: MemoryService) -> None:
    """Test that an unknown root yields an empty subgraph."""
    assert service.find_related_entities("nope", 3) == Subgraph()


def test_find_related_handles_cycles(service: MemoryService) -> None:
    """Test that a cycle back to the root never returns the root."""
    service.create_entities([Entity(name="a", labels=["X"]), Entity(name="b", labels=["X"])])
    service.create_relationships(
        [Relationship(from_="a", to="b", type="relates_to"), Relationship(from_="b", to="a", type="relates_to")]
    )
    assert service.find_related_entities("a", 5).names() == ["b"]


def test_find_related_shapes_store_results(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that the root and repeated entities returned by a store are dropped."""
    mock_repository.traverse.return_value = Subgraph(
        entities=[Entity(name="a"), Entity(name="b"), Entity(name="b")],
        relationships=[Relationship(from_="a", to="b")],
    )
    result = mocked_service.find_related_entities("a", 2, "relates_to")
    assert result.names() == ["b"]
    mock_repository.traverse.assert_called_once_with("a", 2, "relates_to")


def test_get_graph_meta(service: MemoryService) -> None:
    """Test that graph meta reaches descendants of the graph root."""
    service.create_entities([Entity(name=name, labels=["Meta"]) for name in (GRAPH_ROOT, "x", "y", "z")])
    service.create_relationships(
        [
            Relationship(from_=GRAPH_ROOT, to="x", type="has_part"),
            Relationship(from_=GRAPH_ROOT, to="y", type="has_part"),
            Relationship(from_="y", to="z", type="has_part"),
        ]
    )
    assert set(service.get_graph_meta().names()) == {"x", "y", "z"}
    assert service.get_graph_meta("other").names() == []


def test_get_graph_meta_uses_fixed_root_and_depth(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test the fixed root and depth of graph meta."""
    mock_repository.traverse.return_value = Subgraph()
    mocked_service.get_graph_meta("rel")
    mock_repository.traverse.assert_called_once_with(GRAPH_ROOT, 5, "rel")


# Repository failures


def test_repository_failure_is_wrapped(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that foreign repository errors become PortError."""
    mock_repository.find_by_name.side_effect = ConnectionError("connection refused")
    with pytest.raises(PortError, match="connection refused") as exc_info:
        mocked_service.get_entity("a")
    assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_repository_timeout_is_distinct(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that timeouts become PortTimeoutError and are not retried."""
    mock_repository.traverse.side_effect = TimeoutError("slow")
    with pytest.raises(PortTimeoutError):
        mocked_service.find_related_entities("a", 1)
    assert mock_repository.traverse.call_count == 1


def test_repository_errors_are_not_masked(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that a failing list query never turns into an empty result."""
    mock_repository.find_relationships.side_effect = RuntimeError("boom")
    with pytest.raises(PortError):
        mocked_service.find_relationships(RelationshipSelector())


def test_domain_errors_pass_through(mocked_service: MemoryService, mock_repository: MagicMock) -> None:
    """Test that domain errors raised by the repository are propagated unchanged."""
    mock_repository.create.side_effect = ConflictError(["a"])
    with pytest.raises(ConflictError):
        mocked_service.create_entities([Entity(name="a", labels=["X"])])
