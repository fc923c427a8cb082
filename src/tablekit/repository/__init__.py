"""
Repository

This package provides the table repository and its restricted variants.
"""

from tablekit.repository.data_repository import DataRepository
from tablekit.repository.repository import Repository
from tablekit.repository.setup_repository import SetupRepository

__all__ = ["DataRepository", "Repository", "SetupRepository"]
