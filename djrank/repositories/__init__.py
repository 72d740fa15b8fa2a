"""
Repositories Package - DJ Rank
djrank/repositories/__init__.py

Data access layer for performer records.
"""

from djrank.repositories.base import BaseRepository, PerformerRepository
from djrank.repositories.memory_repository import InMemoryPerformerRepository
from djrank.repositories.performer_repository import SnowflakePerformerRepository

__all__ = [
    "BaseRepository",
    "PerformerRepository",
    "InMemoryPerformerRepository",
    "SnowflakePerformerRepository",
]
