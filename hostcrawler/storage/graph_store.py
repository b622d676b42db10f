# hostcrawler/storage/graph_store.py
"""
On-disk forms of the discovery graph.

Whole graph: one JSON document mapping host -> vertex.
Per vertex: one vertex.json in each host directory under the output
root, so a crawl can persist after every host without rewriting the
whole graph. The host key is stored inside the file, directory names
are only a filesystem-safe rendering of it.
"""

import json
import logging
import os
from pathlib import Path

from hostcrawler.graph import DiscoveryGraph, Vertex
from hostcrawler.normalizer import host_name
from hostcrawler.site import VERTEX_FILE

GRAPH_FILE = "graph.json"

logger = logging.getLogger(__name__)


def _write_json(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    os.replace(tmp, path)


def serialize(graph: DiscoveryGraph, path) -> Path:
    path = Path(path)
    data = {host: graph.vertex(host).to_dict() for host in graph}
    _write_json(path, data)
    return path


def reconstruct(path, events=None) -> DiscoveryGraph:
    data = json.loads(Path(path).read_text(encoding="utf-8"))

    graph = DiscoveryGraph(events=events)
    for host, vertex in data.items():
        graph.set_vertex(host, Vertex.from_dict(vertex))
    return graph


def vertex_path(root, host: str) -> Path:
    return Path(root) / host_name(host) / VERTEX_FILE


def persist_vertex(graph: DiscoveryGraph, host: str, root) -> Path:
    path = vertex_path(root, host)
    data = {"host": host, **graph.vertex(host).to_dict()}
    _write_json(path, data)
    return path


def persist(graph: DiscoveryGraph, root):
    for host in graph:
        persist_vertex(graph, host, root)


def reconstruct_from_directory(root, events=None) -> DiscoveryGraph:
    graph = DiscoveryGraph(events=events)

    root = Path(root)
    if not root.is_dir():
        return graph

    for path in sorted(root.glob(f"*/{VERTEX_FILE}")):
        data = json.loads(path.read_text(encoding="utf-8"))
        host = data.pop("host")
        graph.set_vertex(host, Vertex.from_dict(data))

    logger.info("Reconstructed %d host(s) from %s", len(graph), root)
    return graph
