"""Task entities built on top of the memory service."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import structlog

from memory_graph.errors import NotFoundError, ValidationError
from memory_graph.models import (
    Entity,
    EntityUpdate,
    ObservationsUpdate,
    PropertiesUpdate,
    PropertyValue,
    Relationship,
    RelationshipSelector,
    name_problems,
)
from memory_graph.service import MemoryService

logger = structlog.get_logger()

TASK_LABEL = "Task"
DEPENDS_ON = "depends_on"
CONTAINS = "contains"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TaskType(str, Enum):
    FEATURE = "feature"
    BUG = "bug"
    CHORE = "chore"
    IMPROVEMENT = "improvement"


_STATUS_ALIASES = {"inprogress": TaskStatus.IN_PROGRESS, "in-progress": TaskStatus.IN_PROGRESS}


def parse_status(value: TaskStatus | str) -> TaskStatus:
    """Parse a task status, accepting `inprogress` and `in-progress` as aliases.

    Raises:
        ValidationError: If the value is not a known status
    """
    if isinstance(value, TaskStatus):
        return value
    normalized = str(value).strip().lower()
    if normalized in _STATUS_ALIASES:
        return _STATUS_ALIASES[normalized]
    try:
        return TaskStatus(normalized)
    except ValueError:
        allowed = ", ".join(status.value for status in TaskStatus)
        raise ValidationError(f"Invalid task status '{value}' (expected one of: {allowed})") from None


def parse_priority(value: Priority | str) -> Priority:
    if isinstance(value, Priority):
        return value
    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(priority.value for priority in Priority)
        raise ValidationError(f"Invalid task priority '{value}' (expected one of: {allowed})") from None


def parse_task_type(value: TaskType | str) -> TaskType:
    if isinstance(value, TaskType):
        return value
    try:
        return TaskType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(task_type.value for task_type in TaskType)
        raise ValidationError(f"Invalid task type '{value}' (expected one of: {allowed})") from None


def parse_due_date(value: str) -> str:
    """Check that a due date is an ISO-8601 date or datetime and return it unchanged."""
    try:
        datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid due date '{value}' (expected ISO-8601)") from None
    return value


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class Task:
    """A task entity with its reserved properties unpacked."""

    name: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MEDIUM
    task_type: TaskType = TaskType.FEATURE
    created_at: str = ""
    updated_at: str = ""
    due_date: str | None = None
    labels: list[str] = field(default_factory=list)
    observations: list[str] = field(default_factory=list)
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: Entity, depends_on: list[str] | None = None) -> "Task":
        """Build a task from a stored entity.

        Unknown enumeration values fall back to the defaults, so a hand-edited
        store never makes a task unreadable.
        """
        props = dict(entity.properties)

        def _parse(parser, key, default):
            raw = props.pop(key, None)
            if raw is None:
                return default
            try:
                return parser(raw)
            except ValidationError:
                logger.warning("Ignoring invalid task property", task=entity.name, key=key, value=raw)
                return default

        status = _parse(parse_status, "status", TaskStatus.TODO)
        priority = _parse(parse_priority, "priority", Priority.MEDIUM)
        task_type = _parse(parse_task_type, "task_type", TaskType.FEATURE)
        due_date = props.pop("due_date", None)
        return cls(
            name=entity.name,
            description=str(props.pop("description", "")),
            status=status,
            priority=priority,
            task_type=task_type,
            created_at=str(props.pop("created_at", "")),
            updated_at=str(props.pop("updated_at", "")),
            due_date=str(due_date) if due_date is not None else None,
            labels=list(entity.labels),
            observations=list(entity.observations),
            properties=props,
            depends_on=list(depends_on or []),
        )


@dataclass
class TaskInput:
    """Everything needed to create a task."""

    name: str
    description: str = ""
    status: TaskStatus | str = TaskStatus.TODO
    priority: Priority | str = Priority.MEDIUM
    task_type: TaskType | str = TaskType.FEATURE
    due_date: str | None = None
    labels: list[str] = field(default_factory=list)
    observations: list[str] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)


@dataclass
class TaskUpdate:
    """Partial update of a task; None leaves a field unchanged."""

    description: str | None = None
    status: TaskStatus | str | None = None
    priority: Priority | str | None = None
    task_type: TaskType | str | None = None
    due_date: str | None = None
    observations: ObservationsUpdate | None = None
    add_depends_on: list[str] | None = None
    remove_depends_on: list[str] | None = None


def _is_task(entity: Entity | None) -> bool:
    return entity is not None and TASK_LABEL in entity.labels


class TaskService:
    """Create, read, update, delete and list task entities.

    Every task carries the Task label and a status from TaskStatus. A dependency
    is a `depends_on` relationship from the dependent task to the task it waits
    for; a project owns its tasks through `contains` relationships.
    """

    def __init__(self, service: MemoryService) -> None:
        self.service = service

    def _task_properties(self, task: TaskInput, timestamp: str) -> dict[str, PropertyValue]:
        props: dict[str, PropertyValue] = {
            "description": task.description,
            "status": parse_status(task.status).value,
            "priority": parse_priority(task.priority).value,
            "task_type": parse_task_type(task.task_type).value,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        if task.due_date is not None:
            props["due_date"] = parse_due_date(task.due_date)
        return props

    def create_tasks(self, tasks: list[TaskInput], project: str | None = None) -> list[Task]:
        """Create tasks with their project and dependency relationships.

        Args:
            tasks: Tasks to create
            project: Project entity that contains the tasks; defaults to the configured project

        Raises:
            ValidationError: If a task is malformed, depends on itself or on an unknown entity
            NotFoundError: If the project does not exist
        """
        project = project or self.service.config.default_project
        logger.info("Creating tasks", count=len(tasks), project=project)

        timestamp = _now()
        entities = []
        batch_names = {task.name for task in tasks}
        for task in tasks:
            problems = name_problems(task.name)
            if problems:
                raise ValidationError(problems, subject=str(task.name) or "<unnamed>")
            try:
                props = self._task_properties(task, timestamp)
            except ValidationError as e:
                raise ValidationError(e.problems, subject=task.name) from None
            if task.name in task.depends_on:
                raise ValidationError(f"Task '{task.name}' cannot depend on itself", subject=task.name)
            for dependency in task.depends_on:
                if dependency not in batch_names and self.service.get_entity(dependency) is None:
                    raise ValidationError(f"Dependency '{dependency}' not found", subject=task.name)
            entities.append(
                Entity(
                    name=task.name,
                    labels=[TASK_LABEL] + [label for label in task.labels if label != TASK_LABEL],
                    observations=list(task.observations),
                    properties=props,
                )
            )

        if project is not None and self.service.get_entity(project) is None:
            raise NotFoundError(project)

        created = self.service.create_entities(entities)

        relationships = []
        for task in tasks:
            if project is not None:
                relationships.append(Relationship(from_=project, to=task.name, type=CONTAINS))
            for dependency in dict.fromkeys(task.depends_on):
                relationships.append(Relationship(from_=task.name, to=dependency, type=DEPENDS_ON))
        if relationships:
            self.service.create_relationships(relationships)

        dependencies = {task.name: list(dict.fromkeys(task.depends_on)) for task in tasks}
        logger.info("Tasks created", count=len(created))
        return [Task.from_entity(entity, dependencies.get(entity.name)) for entity in created]

    def _dependencies(self, name: str) -> list[str]:
        relationships = self.service.find_relationships(RelationshipSelector(from_=name, type=DEPENDS_ON))
        return [relationship.to for relationship in relationships]

    def get_task(self, name: str) -> Task | None:
        """Return the named task, or None if there is no such task."""
        logger.debug("Getting task", name=name)
        entity = self.service.get_entity(name)
        if not _is_task(entity):
            return None
        return Task.from_entity(entity, self._dependencies(name))

    def update_task(self, name: str, update: TaskUpdate) -> Task:
        """Apply a partial update to a task.

        Raises:
            ValidationError: If a value is not part of its enumeration or a dependency is invalid
            NotFoundError: If the task does not exist
        """
        problems = name_problems(name)
        if problems:
            raise ValidationError(problems)

        props: dict[str, PropertyValue] = {}
        try:
            if update.status is not None:
                props["status"] = parse_status(update.status).value
            if update.priority is not None:
                props["priority"] = parse_priority(update.priority).value
            if update.task_type is not None:
                props["task_type"] = parse_task_type(update.task_type).value
            if update.due_date is not None:
                props["due_date"] = parse_due_date(update.due_date)
        except ValidationError as e:
            raise ValidationError(e.problems, subject=name) from None
        if update.description is not None:
            props["description"] = update.description
        if update.add_depends_on and name in update.add_depends_on:
            raise ValidationError(f"Task '{name}' cannot depend on itself", subject=name)
        dependency_problems = [
            problem
            for dependency in [*(update.add_depends_on or []), *(update.remove_depends_on or [])]
            for problem in name_problems(dependency)
        ]
        if dependency_problems:
            raise ValidationError(dependency_problems, subject=name)

        logger.info("Updating task", name=name, changes=sorted(props))
        entity = self.service.get_entity(name)
        if not _is_task(entity):
            raise NotFoundError(name)

        for dependency in update.add_depends_on or []:
            if self.service.get_entity(dependency) is None:
                raise ValidationError(f"Dependency '{dependency}' not found", subject=name)

        props["updated_at"] = _now()
        self.service.update_entity(
            name,
            EntityUpdate(properties=PropertiesUpdate(add=props), observations=update.observations),
        )

        for dependency in update.remove_depends_on or []:
            self.service.delete_relationships(RelationshipSelector(from_=name, to=dependency, type=DEPENDS_ON))

        if update.add_depends_on:
            existing = set(self._dependencies(name))
            new = [
                Relationship(from_=name, to=dependency, type=DEPENDS_ON)
                for dependency in dict.fromkeys(update.add_depends_on)
                if dependency not in existing
            ]
            if new:
                self.service.create_relationships(new)

        task = self.get_task(name)
        if task is None:
            raise NotFoundError(name)
        logger.info("Task updated", name=name, status=task.status.value)
        return task

    def delete_task(self, name: str) -> None:
        """Delete a task together with all of its relationships.

        Raises:
            NotFoundError: If the task does not exist
        """
        logger.info("Deleting task", name=name)
        if not _is_task(self.service.get_entity(name)):
            raise NotFoundError(name)
        self.service.delete_entities({name})

    def list_tasks(self, project: str | None = None, status: TaskStatus | str | None = None) -> list[Task]:
        """List tasks, optionally restricted to a project and a status.

        Args:
            project: Project whose `contains` relationships select the tasks; defaults
                to the configured project, all tasks when neither is set
            status: Only return tasks in this status
        """
        wanted = parse_status(status) if status is not None else None
        project = project or self.service.config.default_project
        logger.info("Listing tasks", project=project, status=wanted.value if wanted else None)

        if project is not None:
            entities = self.service.find_related_entities(project, 1, CONTAINS).entities
        else:
            entities = self.service.find_entities_by_labels([TASK_LABEL])

        dependencies: dict[str, list[str]] = defaultdict(list)
        for relationship in self.service.find_relationships(RelationshipSelector(type=DEPENDS_ON)):
            dependencies[relationship.from_].append(relationship.to)

        tasks = [Task.from_entity(entity, dependencies.get(entity.name)) for entity in entities if _is_task(entity)]
        if wanted is not None:
            tasks = [task for task in tasks if task.status == wanted]
        logger.info("Listed tasks", count=len(tasks))
        return tasks
