"""Persistence adapters."""

from coach_realtime.adapters.persistence.in_memory_repository import InMemoryEntityRepository
from coach_realtime.adapters.persistence.sequence_counter import SequenceCounter

__all__ = ["InMemoryEntityRepository", "SequenceCounter"]
