"""Cache providers.

In-memory TTL cache used for upstream responses that are expensive or rate
limited (OpenCage lookups, Wikipedia geosearch pages).

MemoryCacheProvider is process-local. For multi-worker deployments, swap in a
shared adapter implementing ICacheProvider without changing any business
logic.
"""

from perceptacle.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
