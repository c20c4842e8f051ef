"""Project commands for memory graph CLI."""

from cyclopts import App

from memory_graph.models import Entity

project_app = App(name="project", help="Inspect projects and what surrounds them")


def _print_group(title: str, entities: list[Entity]) -> None:
    if not entities:
        return
    print(f"\n{title}:")
    for entity in entities:
        print(f"  ● {entity.name}")


@project_app.command(name="list")
def list_projects(filter: str | None = None) -> None:
    """List projects, optionally matching a name or observation substring."""
    from memory_graph.cli import get_project_service

    projects = get_project_service().list_projects(filter)

    print(f"Found {len(projects)} project(s):\n")
    for project in projects:
        summary = f" - {project.observations[0]}" if project.observations else ""
        print(f"● {project.name}{summary}")


@project_app.command
def context(name: str | None = None) -> None:
    """Show the tasks, components, technologies and notes of a project.

    Args:
        name: Project entity; defaults to memory.default_project
    """
    from memory_graph.cli import get_project_service, print_entity

    project_context = get_project_service().get_project_context(name)

    print_entity(project_context.project)
    if project_context.tasks:
        print("\nTasks:")
        for task in project_context.tasks:
            print(f"  ● {task.name} [{task.status.value}]")
    _print_group("Components", project_context.components)
    _print_group("Technologies", project_context.technologies)
    _print_group("Notes", project_context.notes)
    _print_group("Related", project_context.other)
