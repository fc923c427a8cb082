"""
tablekit

Active-record style data access for relational tables.
"""

from tablekit.db import Database
from tablekit.fields import FieldDescriptor, FieldTable, FieldType
from tablekit.model import Model
from tablekit.repository import DataRepository, Repository, SetupRepository

__all__ = [
    "Database",
    "DataRepository",
    "FieldDescriptor",
    "FieldTable",
    "FieldType",
    "Model",
    "Repository",
    "SetupRepository",
]
