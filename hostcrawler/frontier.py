# hostcrawler/frontier.py
import heapq
import itertools
import threading

from hostcrawler.config import MAX_PRIORITY


class Frontier:
    """
    Priority queue of hosts waiting to be crawled.

    Higher priority pops first, equal priorities pop in the order they
    were pushed. A pending host keeps the highest priority it was ever
    pushed with, and a host handed out by pop() is never queued again
    in the same run.
    """

    def __init__(self):
        self._heap = []
        self._pending = {}
        self._scheduled = set()
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def push(self, host: str, priority: int) -> bool:
        with self._lock:
            if host in self._scheduled:
                return False

            current = self._pending.get(host)
            if current is not None and current >= priority:
                return False

            self._pending[host] = priority
            heapq.heappush(self._heap, (-priority, next(self._seq), host))
            return True

    def pop(self):
        """Return (host, priority) or None when the frontier is empty."""
        with self._lock:
            while self._heap:
                neg_priority, _, host = heapq.heappop(self._heap)
                # Entries superseded by a higher priority push are stale
                if self._pending.get(host) != -neg_priority:
                    continue

                del self._pending[host]
                self._scheduled.add(host)
                return host, -neg_priority

            return None

    def discard(self, host: str):
        with self._lock:
            self._pending.pop(host, None)

    def merge(self, graph):
        """
        Queue what the graph still has to offer.

        Undiscovered vertices get the maximum priority, children that
        are not vertices yet (or not discovered) get the weight of the
        edge that found them.
        """
        hosts = graph.hosts()

        for host in hosts:
            if not graph.discovered(host):
                self.push(host, MAX_PRIORITY)

        for host in hosts:
            for child in graph.get_edges(host):
                if graph.exists(child) and graph.discovered(child):
                    continue
                self.push(child, graph.get_edge_weight(host, child))

    def __len__(self):
        with self._lock:
            return len(self._pending)

    def __contains__(self, host):
        with self._lock:
            return host in self._pending

    def get_stats(self):
        with self._lock:
            return {
                "pending_count": len(self._pending),
                "scheduled_count": len(self._scheduled),
            }
