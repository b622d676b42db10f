"""
Discovery graph.

Directed weighted graph of hosts. Every crawled host is a vertex, its
outgoing edges point at the hosts its pages link to. Edge targets do
not have to be vertices until the crawler gets to them.
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, List, Optional

from hostcrawler.errors import UnknownEdge, UnknownVertex
from hostcrawler.events import ConnectionDiscovered, HostDiscovered


class Edge:
    """Edge to a child host. Identity is the child alone, weight is ignored."""

    __slots__ = ("child", "weight")

    def __init__(self, child: str, weight: int = 1):
        if not child:
            raise ValueError("child is required")
        if weight <= 0:
            raise ValueError(f"Edge weight must be positive, got {weight}")
        self.child = child
        self.weight = weight

    def __eq__(self, other):
        if not isinstance(other, Edge):
            return NotImplemented
        return self.child == other.child

    def __hash__(self):
        return hash(self.child)

    def __repr__(self):
        return f"Edge({self.child!r}, {self.weight})"

    def is_equal(self, other: "Edge") -> bool:
        """Strict comparison, weight included."""
        return self == other and self.weight == other.weight

    def to_dict(self) -> dict:
        return {"child": self.child, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: dict) -> "Edge":
        return cls(data["child"], int(data["weight"]))


class Vertex:
    def __init__(self, attributes: Optional[Dict[str, str]] = None,
                 discovery_time: datetime = None, discovered: bool = False,
                 edges=None):
        self.discovery_time = discovery_time or datetime.now(timezone.utc)
        self.discovered = discovered
        # Attributes are frozen at insertion
        self._attributes = dict(attributes or {})
        self.edges: Dict[str, Edge] = {}
        for edge in edges or ():
            self.edges[edge.child] = edge

    @property
    def attributes(self):
        return MappingProxyType(self._attributes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def __eq__(self, other):
        if not isinstance(other, Vertex):
            return NotImplemented
        return (
            self.discovery_time == other.discovery_time
            and self.discovered == other.discovered
            and list(self._attributes.items()) == list(other._attributes.items())
            and {c: e.weight for c, e in self.edges.items()}
            == {c: e.weight for c, e in other.edges.items()}
        )

    __hash__ = None

    def to_dict(self) -> dict:
        return {
            "discovery_time": self.discovery_time.isoformat(),
            "discovered": self.discovered,
            "attributes": dict(self._attributes),
            "edges": [e.to_dict() for e in self.edges.values()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vertex":
        return cls(
            attributes=data.get("attributes") or {},
            discovery_time=datetime.fromisoformat(data["discovery_time"]),
            discovered=bool(data.get("discovered", False)),
            edges=[Edge.from_dict(e) for e in data.get("edges", [])],
        )


class DiscoveryGraph:
    """
    Host graph shared by the scheduler and its per-host cycle.

    Not safe for concurrent mutation, the scheduler processes one host
    at a time.
    """

    def __init__(self, events=None):
        self._vertices: Dict[str, Vertex] = {}
        self.events = events

    def _publish(self, event):
        if self.events is not None:
            self.events.publish(event)

    def _get(self, host: str) -> Vertex:
        try:
            return self._vertices[host]
        except KeyError:
            raise UnknownVertex(host) from None

    def exists(self, host: str) -> bool:
        return host is not None and host in self._vertices

    def add_vertex(self, host: str, attributes: Optional[Dict[str, str]] = None) -> bool:
        """Insert a host, returns False and leaves it untouched if present."""
        if self.exists(host):
            return False

        vertex = Vertex(attributes)
        self._vertices[host] = vertex

        self._publish(HostDiscovered(host, vertex.discovery_time, dict(vertex.attributes)))
        return True

    def add_edge(self, source: str, target: str) -> bool:
        """
        Connect source to target.

        Returns True for a new edge, otherwise bumps the existing edge's
        weight and returns False. The source must be a vertex, the
        target does not have to be.
        """
        vertex = self._get(source)

        edge = vertex.edges.get(target)
        if edge is None:
            edge = Edge(target)
            vertex.edges[target] = edge
            created = True
        else:
            edge.weight += 1
            created = False

        self._publish(ConnectionDiscovered(source, target, edge.weight))
        return created

    def clear_edges(self, host: str):
        """Forget the edges of a host whose crawl is being redone."""
        self._get(host).edges.clear()

    def mark_discovered(self, host: str):
        self._get(host).discovered = True

    def mark_do_not_process(self, host: str):
        """Drop a failed host's edges and retire it for the rest of the run."""
        vertex = self._get(host)
        vertex.edges.clear()
        vertex.discovered = True

    def discovered(self, host: str) -> bool:
        return self._get(host).discovered

    def get_edges(self, host: str) -> List[str]:
        return list(self._get(host).edges)

    def get_edge_weight(self, source: str, target: str) -> int:
        edge = self._get(source).edges.get(target)
        if edge is None:
            raise UnknownEdge(source, target)
        return edge.weight

    def get_attributes(self, host: str):
        return self._get(host).attributes

    def get_discovery_time(self, host: str) -> datetime:
        return self._get(host).discovery_time

    def vertex(self, host: str) -> Vertex:
        return self._get(host)

    def hosts(self) -> List[str]:
        return list(self._vertices)

    def edge_count(self) -> int:
        return sum(v.edge_count for v in self._vertices.values())

    def set_vertex(self, host: str, vertex: Vertex):
        """Install a reconstructed vertex, used when loading from disk."""
        if host in self._vertices:
            raise ValueError(f"Vertex {host} already exists")
        self._vertices[host] = vertex

    def __contains__(self, host):
        return self.exists(host)

    def __len__(self):
        return len(self._vertices)

    def __iter__(self):
        return iter(list(self._vertices))

    def __eq__(self, other):
        if not isinstance(other, DiscoveryGraph):
            return NotImplemented
        return self._vertices == other._vertices

    __hash__ = None
