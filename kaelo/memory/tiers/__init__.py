"""Memory tier implementations.

- Tier 1: Short-term memory (in-process ring buffer)
- Tier 2: Long-term memory (durable session store)
"""
