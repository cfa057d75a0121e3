"""
Record Store Module

Persistence contract for certificate records and anchoring batches.
"""

from .base import RecordStore
from .memory import InMemoryRecordStore

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
]
