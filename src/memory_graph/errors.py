"""Error kinds raised by the memory graph domain layer."""


class MemoryGraphError(Exception):
    """Base class for all memory graph errors."""


class ValidationError(MemoryGraphError):
    """Input was malformed or out of range.

    Raised before any repository call, so a rejected operation has no side effects.
    """

    def __init__(self, problems: str | list[str], subject: str | None = None) -> None:
        """Initialize validation error.

        Args:
            problems: One problem description or a list of them
            subject: Name of the entity, relationship or task the problems belong to
        """
        self.problems = [problems] if isinstance(problems, str) else list(problems)
        self.subject = subject
        message = "; ".join(self.problems)
        if subject:
            message = f"{subject}: {message}"
        super().__init__(message)


class NotFoundError(MemoryGraphError):
    """A mutating operation targeted an entity that does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Entity not found: {name}")


class ConflictError(MemoryGraphError):
    """An entity with the same name already exists."""

    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"Entity already exists: {', '.join(names)}")


class EntityReferenceError(MemoryGraphError):
    """A relationship references an entity the store does not know."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Relationship endpoint does not exist: {', '.join(missing)}")


class PortError(MemoryGraphError):
    """The repository failed (connectivity, storage fault, corrupt data)."""


class PortTimeoutError(PortError):
    """A repository call timed out or was cancelled."""
