"""
Sitemap discovery.

Breadth-first walk over a host's sitemap index tree. Every index file
of one level is downloaded and parsed in parallel, the next level only
starts once the whole current level is done. Both index entries and
page entries are checked against the host policy before they are
accepted.
"""

import hashlib
import logging
import shutil
import threading
import time
import xml.etree.ElementTree as ET
import zlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from hostcrawler import compression
from hostcrawler.config import HOST_URLS_LIMIT, SITEMAP_INDEX_LIMIT
from hostcrawler.normalizer import disk_path, is_resource, local_path

HTML_EXTENSIONS = (".htm", ".html")


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def parse_sitemap(path):
    """
    Return (index urls, page urls) of a sitemap document.

    Index files and url sets may be mixed in one document, both are
    collected. Namespaces are ignored.
    """
    index_urls, page_urls = [], []

    root = ET.parse(path).getroot()
    for elem in root.iter():
        kind = _local_name(elem.tag)
        if kind not in ("sitemap", "url"):
            continue

        loc = next((c.text for c in elem if _local_name(c.tag) == "loc"), None)
        if not loc or not loc.strip():
            continue

        loc = loc.strip()
        if local_path(loc) == "/":
            # root url
            continue

        (index_urls if kind == "sitemap" else page_urls).append(loc)

    return index_urls, page_urls


@dataclass
class SitemapResult:
    urls: set
    discovered: int

    def __len__(self):
        return len(self.urls)

    def resources(self, extensions=None) -> list:
        res = []
        for url in sorted(self.urls):
            if not is_resource(url):
                continue
            if extensions is None or local_path(url).lower().endswith(tuple(extensions)):
                res.append(url)
        return res

    def roots(self) -> list:
        return [url for url in sorted(self.urls) if not is_resource(url)]

    def html_pages(self, extensions=HTML_EXTENSIONS) -> list:
        """HTML resources plus every root page as its implicit index.html."""
        pages = dict.fromkeys(self.resources(extensions))
        for root in self.roots():
            pages.setdefault(root + "index.html")
        return list(pages)


class SitemapDiscoverer:
    def __init__(
        self,
        policy,
        downloader,
        root_path,
        max_url_count: int = HOST_URLS_LIMIT,
        max_index_count: int = SITEMAP_INDEX_LIMIT,
        save_sitemap_files: bool = False,
        logger=None,
    ):
        if max_url_count <= 0 or max_index_count <= 0:
            raise ValueError("Sitemap limits must be positive")

        self.policy = policy
        self.downloader = downloader
        self.root_path = Path(root_path)
        self.max_url_count = max_url_count
        self.max_index_count = max_index_count
        self.save_sitemap_files = save_sitemap_files
        self.logger = logger or logging.getLogger(__name__)

        self._visited = set()
        self._visited_lock = threading.Lock()

        self._urls = set()
        self._discovered = 0
        self._urls_lock = threading.Lock()

        self._next_level = set()
        self._next_lock = threading.Lock()

        self._halted = threading.Event()

    @property
    def halted(self) -> bool:
        return self._halted.is_set()

    def _allowed(self, url: str) -> bool:
        if self.policy.is_allowed(local_path(url)):
            return True
        self.logger.warning("Policy disallows to crawl %s", url)
        return False

    def _sitemap_file(self, url: str) -> Path:
        # Distinct urls of one level may share a disk path, e.g. /maps/ and /maps/sitemap.xml
        file = disk_path(self.root_path, url, default_name="sitemap.xml")
        key = hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]
        return file.with_name(f"{key}_{file.name}")

    def _download_and_parse(self, url: str):
        file = self._sitemap_file(url)
        parsed = None

        try:
            if not self.downloader.download(url, file):
                return [], []

            parsed = file
            if compression.is_gzip(file):
                name = file.name[:-3] if file.name.endswith(".gz") else file.name + ".xml"
                parsed = file.with_name(name)
                compression.decompress(file, parsed)

            return parse_sitemap(parsed)

        except (ET.ParseError, OSError, EOFError, zlib.error) as e:
            self.logger.error("Failed to process sitemap %s: %s", url, e)
            return [], []

        finally:
            if not self.save_sitemap_files:
                for f in {file, parsed}:
                    if f is not None:
                        Path(f).unlink(missing_ok=True)

    def _accept(self, pages):
        with self._urls_lock:
            new = [p for p in dict.fromkeys(pages) if p not in self._urls]
            self._discovered += len(new)

            room = self.max_url_count - len(self._urls)
            self._urls.update(new[:max(room, 0)])

            if len(self._urls) >= self.max_url_count:
                self._halted.set()

    def _process(self, url: str):
        path = local_path(url)
        with self._visited_lock:
            if path in self._visited:
                return
            self._visited.add(path)

        if self.halted:
            return

        index_urls, page_urls = self._download_and_parse(url)

        children = [u for u in index_urls if self._allowed(u)]
        pages = [u for u in page_urls if self._allowed(u)]

        with self._next_lock:
            self._next_level.update(children)

        self._accept(pages)

    def _take_next_level(self) -> list:
        with self._next_lock:
            candidates = sorted(self._next_level)
            self._next_level = set()

        level, paths = [], set()
        with self._visited_lock:
            for url in candidates:
                path = local_path(url)
                if path not in self._visited and path not in paths:
                    paths.add(path)
                    level.append(url)

        if len(level) > self.max_index_count:
            self.logger.info(
                "Sitemap level of %d index files truncated to %d",
                len(level), self.max_index_count,
            )
            level = level[:self.max_index_count]

        return level

    def discover(self, seeds) -> SitemapResult:
        start = time.time()

        level = [u for u in dict.fromkeys(seeds) if self._allowed(u)]
        depth = 0

        while level and not self.halted:
            self.logger.debug("Sitemap level %d: %d index file(s)", depth, len(level))

            with ThreadPoolExecutor(max_workers=len(level)) as pool:
                # list() waits for the whole level and re-raises worker errors
                list(pool.map(self._process, level))

            level = self._take_next_level()
            depth += 1

        if self.halted:
            self.logger.info("Sitemap url limit of %d reached", self.max_url_count)

        if not self.save_sitemap_files:
            shutil.rmtree(self.root_path, ignore_errors=True)

        with self._urls_lock:
            result = SitemapResult(set(self._urls), self._discovered)

        self.logger.info(
            "Sitemap discovery found %d url(s), accepted %d in %.2fs",
            result.discovered, len(result.urls), time.time() - start,
        )
        return result
