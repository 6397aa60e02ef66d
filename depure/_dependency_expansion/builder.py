"""Bounded breadth-first expansion of declared requirements."""

from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..cancellation import CancellationToken, is_cancelled
from ..logging_config import logger
from .._registry.models import normalize_package_name
from .models import DependencyGraph, GraphEdge, GraphNode
from .protocol import RegistryLookup

DEFAULT_MAX_DEPTH = 2
DEFAULT_CONCURRENCY = 8


class TransitiveGraphBuilder:
    """
    Expands verified direct dependencies into a requirement graph.

    The expansion is breadth-first and level-synchronous: every package
    of one level is looked up (concurrently, through the registry cache)
    before the next level starts, and results are consumed in queue
    order, so the graph is identical no matter which fetch finishes
    first. Each name is queued at most once, at the lowest level it is
    reached, and nothing beyond ``max_depth`` is queued, so cycles and
    large trees always terminate.

    Direct dependencies are always nodes at level 0. A transitive package
    becomes a node only if the registry confirms it.

    Example:
        builder = TransitiveGraphBuilder(client, max_depth=2, concurrency=8)
        graph = builder.expand(["requests", "flask"])
        graph.to_dict()  # {"nodes": [{"id": "requests", "level": 0}, ...], "edges": [...]}
    """

    def __init__(
        self,
        registry: RegistryLookup,
        max_depth: int = DEFAULT_MAX_DEPTH,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._registry = registry
        self.max_depth = max_depth
        self.concurrency = concurrency

    def expand(
        self,
        direct_names: Iterable[str],
        max_depth: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DependencyGraph:
        """
        Build the dependency graph for a set of direct dependencies.

        Args:
            direct_names: Verified direct dependency names (depth 0)
            max_depth: Override of the builder's depth bound
            cancel_token: Optional cancellation signal; checked before each
                level and before each lookup. A cancelled expansion returns
                the part of the graph built so far.

        Returns:
            DependencyGraph with nodes in breadth-first order
        """
        depth_bound = self.max_depth if max_depth is None else max_depth
        if depth_bound < 0:
            raise ValueError("max_depth must be >= 0")

        levels: Dict[str, int] = {}
        for name in direct_names:
            key = normalize_package_name(name) if name else ""
            if key and key not in levels:
                levels[key] = 0

        direct: Set[str] = set(levels)
        confirmed: Set[str] = set(direct)
        edges: List[Tuple[str, str]] = []
        edge_set: Set[Tuple[str, str]] = set()

        frontier = list(levels)
        depth = 0
        while frontier:
            if is_cancelled(cancel_token):
                logger.info(f"Dependency expansion cancelled at depth {depth}")
                break

            expand_level = depth < depth_bound
            if not expand_level and depth == 0:
                # Direct dependencies are already verified; nothing to look up
                break

            records = self._registry.lookup_many(frontier, concurrency=self.concurrency, cancel_token=cancel_token)

            next_frontier: List[str] = []
            for name in frontier:
                record = records.get(name)
                if record is None:
                    continue
                confirmed.add(name)
                if not expand_level:
                    continue

                for requirement in record.requirement_names:
                    child = normalize_package_name(requirement)
                    if not child or child == name:
                        continue
                    if child not in levels:
                        levels[child] = depth + 1
                        next_frontier.append(child)
                    if (name, child) not in edge_set:
                        edge_set.add((name, child))
                        edges.append((name, child))

            frontier = next_frontier
            depth += 1

        graph = DependencyGraph(
            nodes=[GraphNode(id=name, level=level) for name, level in levels.items() if name in confirmed],
            edges=[
                GraphEdge(source=source, target=target)
                for source, target in edges
                if source in confirmed and target in confirmed
            ],
        )

        logger.info(
            f"Dependency graph: {len(graph.direct())} direct, {len(graph.transitive())} transitive, "
            f"{len(graph.edges)} edges (max depth {depth_bound})"
        )
        return graph
