"""Data models for transitive dependency expansion."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class GraphNode:
    """A package in the dependency graph.

    Attributes:
        id: Canonical package name
        level: Distance from a direct dependency (0 = direct)
    """

    id: str
    level: int = 0


@dataclass(frozen=True)
class GraphEdge:
    """A "requires" relation: ``source`` declares ``target`` as a requirement."""

    source: str
    target: str


@dataclass
class DependencyGraph:
    """Nodes and edges discovered by a bounded breadth-first expansion.

    Nodes are unique by id and listed in breadth-first discovery order;
    edges are unique and listed in the order they were found.
    """

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def level_of(self, name: str) -> int | None:
        for node in self.nodes:
            if node.id == name:
                return node.level
        return None

    def direct(self) -> List[GraphNode]:
        return [node for node in self.nodes if node.level == 0]

    def transitive(self) -> List[GraphNode]:
        return [node for node in self.nodes if node.level > 0]

    def children_of(self, name: str) -> List[str]:
        return [edge.target for edge in self.edges if edge.source == name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [{"id": node.id, "level": node.level} for node in self.nodes],
            "edges": [{"from": edge.source, "to": edge.target} for edge in self.edges],
        }
