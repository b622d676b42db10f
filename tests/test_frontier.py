"""Tests for host scheduling order."""

from hostcrawler.config import MAX_PRIORITY
from hostcrawler.frontier import Frontier
from hostcrawler.graph import DiscoveryGraph


def drain(frontier):
    order = []
    while True:
        item = frontier.pop()
        if item is None:
            return order
        order.append(item)


class TestFrontier:
    """Priority queue behaviour."""

    def test_higher_priority_first(self):
        f = Frontier()
        f.push("https://low.com", 1)
        f.push("https://high.com", 9)
        f.push("https://mid.com", 5)
        assert [h for h, _ in drain(f)] == ["https://high.com", "https://mid.com", "https://low.com"]

    def test_ties_keep_push_order(self):
        f = Frontier()
        for host in ("https://a.com", "https://b.com", "https://c.com"):
            f.push(host, MAX_PRIORITY)
        assert [h for h, _ in drain(f)] == ["https://a.com", "https://b.com", "https://c.com"]

    def test_pending_host_keeps_highest_priority(self):
        f = Frontier()
        assert f.push("https://a.com", 2)
        assert f.push("https://a.com", 7)
        assert not f.push("https://a.com", 3)
        assert len(f) == 1
        assert drain(f) == [("https://a.com", 7)]

    def test_popped_host_not_requeued(self):
        f = Frontier()
        f.push("https://a.com", 1)
        f.pop()
        assert not f.push("https://a.com", MAX_PRIORITY)
        assert f.pop() is None

    def test_discard(self):
        f = Frontier()
        f.push("https://a.com", 1)
        f.discard("https://a.com")
        assert "https://a.com" not in f
        assert f.pop() is None

    def test_stats(self):
        f = Frontier()
        f.push("https://a.com", 1)
        f.push("https://b.com", 1)
        f.pop()
        assert f.get_stats() == {"pending_count": 1, "scheduled_count": 1}


class TestMerge:
    """Queue construction from the graph."""

    def test_seed_then_undiscovered_vertex_then_children(self):
        graph = DiscoveryGraph()
        graph.add_vertex("https://b.com")
        for _ in range(5):
            graph.add_edge("https://b.com", "https://c.com")

        f = Frontier()
        f.push("https://a.com", MAX_PRIORITY)
        f.merge(graph)

        assert drain(f) == [
            ("https://a.com", MAX_PRIORITY),
            ("https://b.com", MAX_PRIORITY),
            ("https://c.com", 5),
        ]

    def test_discovered_hosts_skipped(self):
        graph = DiscoveryGraph()
        graph.add_vertex("https://a.com")
        graph.add_vertex("https://b.com")
        graph.add_edge("https://a.com", "https://b.com")
        graph.add_edge("https://a.com", "https://c.com")
        graph.mark_discovered("https://a.com")
        graph.mark_discovered("https://b.com")

        f = Frontier()
        f.merge(graph)
        assert drain(f) == [("https://c.com", 1)]

    def test_undiscovered_child_vertex_takes_max_priority(self):
        graph = DiscoveryGraph()
        graph.add_vertex("https://a.com")
        graph.add_vertex("https://b.com")
        graph.add_edge("https://a.com", "https://b.com")
        graph.mark_discovered("https://a.com")

        f = Frontier()
        f.merge(graph)
        assert drain(f) == [("https://b.com", MAX_PRIORITY)]

    def test_child_priority_from_strongest_edge(self):
        graph = DiscoveryGraph()
        for parent, weight in (("https://a.com", 2), ("https://b.com", 4)):
            graph.add_vertex(parent)
            for _ in range(weight):
                graph.add_edge(parent, "https://c.com")
            graph.mark_discovered(parent)

        f = Frontier()
        f.merge(graph)
        assert drain(f) == [("https://c.com", 4)]
