"""Error types raised while scaffolding a project."""


class ScaffoldError(Exception):
    """Base class for failures that abort project creation."""


class ValidationError(ScaffoldError):
    """User-supplied input was rejected before anything touched the disk."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []


class FetchError(ScaffoldError):
    """The template could not be cloned."""


class SubstitutionError(ScaffoldError):
    """A template file could not be read or rewritten."""
