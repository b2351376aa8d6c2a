"""Error taxonomy for the project content index.

Malformed documents never raise; the parser degrades to empty sections.
"""

from typing import Optional


class IndexerError(Exception):
    """Base class for project index failures."""
    pass


class ProjectNotFoundError(IndexerError):
    """Raised when the record store has no project with the requested id."""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class StoreUnavailableError(IndexerError):
    """Raised by store adapters when the backend itself fails."""

    def __init__(self, message: str, project_id: Optional[str] = None):
        super().__init__(message)
        self.project_id = project_id
