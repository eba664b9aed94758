"""
Database module for persistence.

Provides SQLAlchemy models and repository pattern for
interview session persistence.
"""

from mock_interview_studio.db.database import Database
from mock_interview_studio.db.models import (
    Base,
    GeneratedVideoModel,
    SessionModel,
    TurnModel,
)
from mock_interview_studio.db.repository import (
    GeneratedVideoRepository,
    SessionRepository,
    TurnRepository,
)

__all__ = [
    "Base",
    "Database",
    "GeneratedVideoModel",
    "SessionModel",
    "TurnModel",
    "GeneratedVideoRepository",
    "SessionRepository",
    "TurnRepository",
]
