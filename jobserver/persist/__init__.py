"""
Persistence service layer.

This package contains the interface to the durable store for job records,
status events, outputs and logs, and a SQLite implementation of it.
"""

from .interface import PersistAPI
from .sqlite_persist import SqlitePersistAPI

__all__ = ["PersistAPI", "SqlitePersistAPI"]
