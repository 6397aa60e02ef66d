"""Transitive dependency expansion.

Builds a bounded-depth requirement graph for verified direct
dependencies by following each package's declared requirements on the
registry.

Example usage:
    from depure._dependency_expansion import TransitiveGraphBuilder
    from depure._registry import PyPIClient

    with PyPIClient() as client:
        graph = TransitiveGraphBuilder(client, max_depth=2).expand(["requests"])
    print(graph.to_dict())
"""

from .builder import DEFAULT_CONCURRENCY, DEFAULT_MAX_DEPTH, TransitiveGraphBuilder
from .models import DependencyGraph, GraphEdge, GraphNode
from .protocol import RegistryLookup

__all__ = [
    "TransitiveGraphBuilder",
    "DependencyGraph",
    "GraphNode",
    "GraphEdge",
    "RegistryLookup",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_CONCURRENCY",
]
