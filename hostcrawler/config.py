import os
from dataclasses import dataclass, field
from pathlib import Path

from hostcrawler.errors import ConfigError

# Configuration for the host crawler.
# Module constants are the defaults; CrawlerConfig carries the values
# for a single run and is handed to the scheduler explicitly.


# Network timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = 10

# User-Agent string for crawler identification
USER_AGENT = "hostcrawler/0.1 (+https://example.invalid/hostcrawler)"

# robots.txt group the crawler obeys
DEFAULT_AGENT = "*"

# Only links with this scheme become graph edges
DEFAULT_SCHEME = "https"
SUPPORTED_SCHEMES = ("http", "https")

# Pages sampled and downloaded per host
SAMPLE_COUNT = 6

# Politeness delay between page downloads (seconds)
MIN_DELAY = 3
MAX_DELAY = 6

# Some hosts publish huge sitemap trees, these keep one host from
# stalling the whole crawl
HOST_URLS_LIMIT = 1000
SITEMAP_INDEX_LIMIT = 50

# Events kept for late subscribers before the oldest are dropped
EVENT_BUFFER = 1000

# Highest scheduling priority, reserved for seeds and resumed hosts
MAX_PRIORITY = 2 ** 31 - 1

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


@dataclass
class CrawlerConfig:
    output_path: Path = DATA_DIR
    save_robots_file: bool = False
    save_sitemap_files: bool = False
    save_urls: bool = True
    delete_html_after_scrape: bool = True
    serialize_site: bool = True
    serialize_graph: bool = True
    host_urls_limit: int = HOST_URLS_LIMIT
    sitemap_index_limit: int = SITEMAP_INDEX_LIMIT
    enable_log: bool = False
    log_file_path: Path = None
    scheme: str = DEFAULT_SCHEME
    agent: str = DEFAULT_AGENT
    user_agent: str = USER_AGENT
    request_timeout: int = REQUEST_TIMEOUT
    sample_count: int = SAMPLE_COUNT
    event_buffer: int = EVENT_BUFFER
    extensions: tuple = field(default=(".htm", ".html"))

    def __post_init__(self):
        self.output_path = Path(self.output_path)
        if self.log_file_path is None:
            self.log_file_path = self.output_path / "crawler.log"
        self.log_file_path = Path(self.log_file_path)
        self.scheme = self.scheme.lower()

    @classmethod
    def from_env(cls, **overrides) -> "CrawlerConfig":
        """
        Build a config from CRAWLER_* environment variables.

        Keyword overrides win over the environment, values that are None
        are ignored so CLI flags can be passed through unconditionally.
        """
        values = dict(
            output_path=os.getenv("CRAWLER_OUTPUT_PATH", str(DATA_DIR)),
            save_robots_file=_env_bool("CRAWLER_SAVE_ROBOTS_FILE", False),
            save_sitemap_files=_env_bool("CRAWLER_SAVE_SITEMAP_FILES", False),
            save_urls=_env_bool("CRAWLER_SAVE_URLS", True),
            delete_html_after_scrape=_env_bool("CRAWLER_DELETE_HTML_AFTER_SCRAPE", True),
            serialize_site=_env_bool("CRAWLER_SERIALIZE_SITE", True),
            serialize_graph=_env_bool("CRAWLER_SERIALIZE_GRAPH", True),
            host_urls_limit=_env_int("CRAWLER_HOST_URLS_LIMIT", HOST_URLS_LIMIT),
            sitemap_index_limit=_env_int("CRAWLER_SITEMAP_INDEX_LIMIT", SITEMAP_INDEX_LIMIT),
            enable_log=_env_bool("CRAWLER_ENABLE_LOG", False),
            log_file_path=os.getenv("CRAWLER_LOG_FILE_PATH"),
            scheme=os.getenv("CRAWLER_SCHEME", DEFAULT_SCHEME),
            agent=os.getenv("CRAWLER_AGENT", DEFAULT_AGENT),
            user_agent=os.getenv("CRAWLER_USER_AGENT", USER_AGENT),
            request_timeout=_env_int("CRAWLER_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
            sample_count=_env_int("CRAWLER_SAMPLE_COUNT", SAMPLE_COUNT),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self) -> "CrawlerConfig":
        if self.scheme not in SUPPORTED_SCHEMES:
            raise ConfigError(f"Unsupported scheme {self.scheme!r}")
        for name in ("host_urls_limit", "sitemap_index_limit", "sample_count",
                     "request_timeout", "event_buffer"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        return self
