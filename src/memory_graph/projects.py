"""Project lookups built on top of the memory service."""

from dataclasses import dataclass, field

import structlog

from memory_graph.errors import NotFoundError, ValidationError
from memory_graph.models import Entity, LabelMatchMode, RelationshipSelector, validate_name
from memory_graph.service import MemoryService
from memory_graph.tasks import CONTAINS, TASK_LABEL, Task, TaskService

logger = structlog.get_logger()

PROJECT_LABEL = "Project"
COMPONENT_LABEL = "Component"
NOTE_LABEL = "Note"
TECHNOLOGY_LABEL = "Technology"
USES = "uses"
RELATES_TO = "relates_to"

_GROUPED_LABELS = (TASK_LABEL, COMPONENT_LABEL, NOTE_LABEL, TECHNOLOGY_LABEL)


@dataclass
class ProjectContext:
    """A project and the entities grouped around it."""

    project: Entity
    tasks: list[Task] = field(default_factory=list)
    components: list[Entity] = field(default_factory=list)
    technologies: list[Entity] = field(default_factory=list)
    notes: list[Entity] = field(default_factory=list)
    other: list[Entity] = field(default_factory=list)


def _with_label(entities: list[Entity], label: str) -> list[Entity]:
    return [entity for entity in entities if label in entity.labels]


class ProjectService:
    """Read-only project operations.

    A project is an entity with the Project label. It `contains` its tasks and
    components, `uses` technologies, and notes point at it with `relates_to`.
    """

    def __init__(self, service: MemoryService) -> None:
        self.service = service
        self.tasks = TaskService(service)

    def list_projects(self, name_filter: str | None = None) -> list[Entity]:
        """List projects, optionally those whose name or an observation contains name_filter."""
        logger.info("Listing projects", name_filter=name_filter)
        projects = self.service.find_entities_by_labels([PROJECT_LABEL], LabelMatchMode.ALL)
        if name_filter:
            projects = [
                project
                for project in projects
                if name_filter in project.name
                or any(name_filter in observation for observation in project.observations)
            ]
        logger.info("Listed projects", count=len(projects))
        return projects

    def _incoming(self, name: str, relationship_type: str | None = None) -> list[Entity]:
        """Resolve the sources of relationships pointing at name."""
        selector = RelationshipSelector(to=name, type=relationship_type)
        sources = dict.fromkeys(relationship.from_ for relationship in self.service.find_relationships(selector))
        entities = [self.service.get_entity(source) for source in sources if source != name]
        return [entity for entity in entities if entity is not None]

    def get_project_context(self, name: str | None = None) -> ProjectContext:
        """Collect the tasks, components, technologies and notes of a project.

        Args:
            name: Project entity name; defaults to the configured project

        Raises:
            ValidationError: If no name is given and no default project is configured
            NotFoundError: If the project does not exist
        """
        name = name or self.service.config.default_project
        if name is None:
            raise ValidationError("No project given and memory.default_project is not set")
        validate_name(name)
        logger.info("Getting project context", project=name)

        project = self.service.get_entity(name)
        if project is None:
            raise NotFoundError(name)

        contained = self.service.find_related_entities(name, 1, CONTAINS).entities
        used = self.service.find_related_entities(name, 1, USES).entities
        notes = _with_label(self._incoming(name, RELATES_TO), NOTE_LABEL)

        neighbours = {entity.name: entity for entity in self.service.find_related_entities(name, 1).entities}
        for entity in self._incoming(name):
            neighbours.setdefault(entity.name, entity)
        other = [
            entity
            for entity in neighbours.values()
            if not any(label in entity.labels for label in _GROUPED_LABELS)
        ]

        context = ProjectContext(
            project=project,
            tasks=self.tasks.list_tasks(project=name),
            components=_with_label(contained, COMPONENT_LABEL),
            technologies=_with_label(used, TECHNOLOGY_LABEL),
            notes=notes,
            other=other,
        )
        logger.info(
            "Project context collected",
            project=name,
            tasks=len(context.tasks),
            components=len(context.components),
            technologies=len(context.technologies),
            notes=len(context.notes),
            other=len(context.other),
        )
        return context
