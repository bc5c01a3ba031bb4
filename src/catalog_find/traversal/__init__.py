"""Two-level catalog traversal."""

from catalog_find.traversal.walker import TraversalContext, TreeWalker, WalkCounters

__all__ = ["TraversalContext", "TreeWalker", "WalkCounters"]
