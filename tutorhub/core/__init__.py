from .query_cache import QueryCache, QueryDescriptor
from .latch import ActionLatch, LatchRegistry
from .scope import ViewScope

__all__ = ["QueryCache", "QueryDescriptor", "ActionLatch", "LatchRegistry", "ViewScope"]
