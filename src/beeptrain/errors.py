"""Exceptions raised by the beep-train core."""
from __future__ import annotations


class InvalidConfig(ValueError):
    """Stimulus or synthesis parameters are out of range."""


class MissingCollaborator(RuntimeError):
    """A required collaborator reference was not supplied."""

    def __init__(self, owner: str, name: str) -> None:
        super().__init__(f"{owner} requires a {name!r} collaborator; got None")
        self.owner = owner
        self.name = name
