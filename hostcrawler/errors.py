"""
Crawler exceptions.

Contract violations (unknown graph keys, querying an empty policy) are
programming errors and propagate to the caller. Download and parse
failures never use these types, they are logged and treated as no data.
"""


class CrawlerError(Exception):
    pass


class UnknownVertex(CrawlerError, KeyError):
    def __init__(self, host):
        super().__init__(f"Vertex {host} does not exist")
        self.host = host

    def __str__(self):
        return self.args[0]


class UnknownEdge(CrawlerError, KeyError):
    def __init__(self, source, target):
        super().__init__(f"Edge {source} -> {target} does not exist")
        self.source = source
        self.target = target

    def __str__(self):
        return self.args[0]


class InvalidState(CrawlerError):
    pass


class ConfigError(CrawlerError):
    pass
