"""Observation editor.

Pure functions computing an entity's next observation sequence. The caller
persists the result as a whole, the sequence is never patched in place.
"""


def set_observations(current: list[str], observations: list[str]) -> list[str]:
    """Replace the sequence with the given observations, in the given order."""
    return list(observations)


def add_observations(current: list[str], observations: list[str]) -> list[str]:
    """Append observations. Values already present are appended again."""
    return list(current) + list(observations)


def remove_observations(current: list[str], observations: list[str]) -> list[str]:
    """Remove every occurrence of the given observations.

    Survivors keep their relative order; values not present are ignored.
    """
    to_remove = set(observations)
    return [observation for observation in current if observation not in to_remove]


def remove_all_observations(current: list[str], observations: list[str] | None = None) -> list[str]:
    """Clear the sequence."""
    return []
