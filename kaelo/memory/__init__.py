"""Two-tier conversational memory for the Kaelo orchestrator.

- Tier 1: Short-term Memory (in process) - Ring buffer of recent turns
- Tier 2: Long-term Memory (Redis or in-memory) - Durable session profile,
  recent history and progress

The coordinator writes to both tiers after every pipeline run.
"""

from .base import LongTermMemory, StoreError
from .progress import ProgressStats, ProgressTracker
from .tiers.long_term import InMemoryLongTermMemory, RedisLongTermMemory
from .tiers.short_term import ShortTermMemory

__all__ = [
    "LongTermMemory",
    "StoreError",
    "ShortTermMemory",
    "RedisLongTermMemory",
    "InMemoryLongTermMemory",
    "ProgressTracker",
    "ProgressStats",
]
