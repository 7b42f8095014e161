"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from mvstudio.db.models.project import ProjectRow
from mvstudio.db.models.job import JobRow
from mvstudio.db.models.connection import PlatformConnectionRow

__all__ = [
    "ProjectRow",
    "JobRow",
    "PlatformConnectionRow",
]
