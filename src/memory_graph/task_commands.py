"""Task commands for memory graph CLI."""

from cyclopts import App

from memory_graph.models import ObservationsUpdate
from memory_graph.tasks import Task, TaskInput, TaskStatus, TaskUpdate

task_app = App(name="task", help="Manage tasks")


def _print_task(task: Task) -> None:
    print(f"Task: {task.name}")
    print(f"Status: {task.status.value}")
    print(f"Priority: {task.priority.value}")
    print(f"Type: {task.task_type.value}")
    if task.description:
        print(f"Description: {task.description}")
    if task.due_date:
        print(f"Due: {task.due_date}")
    if task.depends_on:
        print(f"Depends on: {', '.join(task.depends_on)}")
    for observation in task.observations:
        print(f"  - {observation}")


@task_app.command
def create(
    name: str,
    description: str = "",
    status: str = "todo",
    priority: str = "medium",
    type_: str = "feature",
    due: str | None = None,
    depends_on: str = "",
    project: str | None = None,
) -> None:
    """Create a task."""
    from memory_graph.cli import get_task_service, parse_list

    task_input = TaskInput(
        name=name,
        description=description,
        status=status,
        priority=priority,
        task_type=type_,
        due_date=due,
        depends_on=parse_list(depends_on),
    )
    tasks = get_task_service().create_tasks([task_input], project=project)
    print(f"Created task {tasks[0].name} ({tasks[0].status.value})")


@task_app.command
def get(name: str) -> None:
    """Show a task."""
    from memory_graph.cli import get_task_service

    task = get_task_service().get_task(name)
    if task is None:
        print(f"Task {name} not found")
        return
    _print_task(task)


@task_app.command
def update(
    name: str,
    description: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    type_: str | None = None,
    due: str | None = None,
    note: str | None = None,
    add_depends_on: str | None = None,
    remove_depends_on: str | None = None,
) -> None:
    """Update a task; --note appends an observation."""
    from memory_graph.cli import get_task_service, parse_list

    task_update = TaskUpdate(
        description=description,
        status=status,
        priority=priority,
        task_type=type_,
        due_date=due,
        observations=ObservationsUpdate(add=[note]) if note else None,
        add_depends_on=parse_list(add_depends_on) or None,
        remove_depends_on=parse_list(remove_depends_on) or None,
    )
    task = get_task_service().update_task(name, task_update)
    print(f"Updated task {task.name} ({task.status.value})")


@task_app.command
def delete(name: str) -> None:
    """Delete a task and its relationships."""
    from memory_graph.cli import get_task_service

    get_task_service().delete_task(name)
    print(f"Deleted task {name}")


@task_app.command(name="list")
def list_tasks(project: str | None = None, status: str | None = None) -> None:
    """List tasks, optionally for one project or status."""
    from memory_graph.cli import get_task_service

    tasks = get_task_service().list_tasks(project=project, status=status)

    print(f"Found {len(tasks)} task(s):\n")
    for task in tasks:
        marker = "○" if task.status in (TaskStatus.DONE, TaskStatus.CANCELLED) else "●"
        print(f"{marker} {task.name} [{task.status.value}] {task.description}".rstrip())
