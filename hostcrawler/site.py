from dataclasses import dataclass, field
from pathlib import Path

from hostcrawler.normalizer import host_name

ROBOTS_FILE = "robots.txt"
SITEMAP_DIR = "Sitemap"
HTML_DIR = "Html"
SITE_FILE = "site.json"
VERTEX_FILE = "vertex.json"
URLS_FILE = "sitemap.txt"


@dataclass
class Site:
    """Per-host workspace under the output root, plus this run's statistics."""

    url: str
    output_root: Path
    robots: bool = False
    sitemaps: list = field(default_factory=list)
    discovered_urls: int = 0
    accepted_urls: int = 0
    html_pages: int = 0
    scraped_pages: int = 0
    status: str = "pending"

    def __post_init__(self):
        self.output_root = Path(self.output_root)

    @property
    def path(self) -> Path:
        return self.output_root / host_name(self.url)

    @property
    def robots_url(self) -> str:
        return f"{self.url}/{ROBOTS_FILE}"

    @property
    def robots_path(self) -> Path:
        return self.path / ROBOTS_FILE

    @property
    def sitemap_root(self) -> Path:
        return self.path / SITEMAP_DIR

    @property
    def html_path(self) -> Path:
        return self.path / HTML_DIR

    @property
    def site_file(self) -> Path:
        return self.path / SITE_FILE

    @property
    def urls_file(self) -> Path:
        return self.path / URLS_FILE

    def prepare(self):
        self.path.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "path": str(self.path),
            "robots_url": self.robots_url,
            "robots": self.robots,
            "sitemaps": sorted(self.sitemaps),
            "discovered_urls": self.discovered_urls,
            "accepted_urls": self.accepted_urls,
            "html_pages": self.html_pages,
            "scraped_pages": self.scraped_pages,
            "status": self.status,
        }
