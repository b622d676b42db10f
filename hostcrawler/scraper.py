"""
Polite page scraper.

Downloads a bounded, pseudo-random sample of a host's pages with a
random delay between requests and hands every downloaded file to the
consumer through a PageChannel. The channel is always closed when the
scraper exits, the consumer loop ends on that signal.
"""

import logging
import queue
import random
import threading
from dataclasses import dataclass
from pathlib import Path

from hostcrawler.config import MAX_DELAY, MIN_DELAY, SAMPLE_COUNT
from hostcrawler.normalizer import disk_path

_CLOSED = object()


@dataclass
class ScrapeSettings:
    sample_count: int = SAMPLE_COUNT
    min_delay: float = MIN_DELAY
    max_delay: float = MAX_DELAY

    def __post_init__(self):
        if self.sample_count <= 0:
            raise ValueError("sample_count must be positive")
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ValueError(f"Invalid delay range [{self.min_delay}, {self.max_delay}]")

    @classmethod
    def from_policy(cls, policy, sample_count: int = SAMPLE_COUNT) -> "ScrapeSettings":
        # Keep the default spread on top of whatever the site asks for
        min_delay = policy.crawl_delay
        return cls(sample_count, min_delay, min_delay + (MAX_DELAY - MIN_DELAY))


class PageChannel:
    """Bounded blocking channel of downloaded file paths."""

    def __init__(self, maxsize: int = 0):
        self._queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, path):
        if self.closed:
            raise ValueError("put() on a closed channel")
        self._queue.put(path)

    def close(self):
        if not self.closed:
            self._closed.set()
            self._queue.put(_CLOSED)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


def sample_buckets(urls, count: int, rng=random) -> list:
    """
    Split urls into `count` contiguous buckets and draw one from each.

    Bounds the work per host without always fetching the first pages.
    """
    if count <= 0:
        raise ValueError("count must be positive")

    urls = list(urls)
    n = len(urls)
    count = min(count, n)

    sample = []
    for i in range(count):
        start = i * n // count
        end = (i + 1) * n // count
        sample.append(urls[rng.randrange(start, end)])
    return sample


class Scraper(threading.Thread):
    def __init__(
        self,
        urls,
        downloader,
        download_path,
        channel: PageChannel,
        settings: ScrapeSettings = None,
        progress=None,
        cancel_event: threading.Event = None,
        rng=None,
        name="Scraper",
        logger=None,
    ):
        super().__init__(name=name, daemon=True)
        self.urls = list(urls)
        self.downloader = downloader
        self.download_path = Path(download_path)
        self.channel = channel
        self.settings = settings or ScrapeSettings()
        self.progress = progress
        self.cancel_event = cancel_event or threading.Event()
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)

        self.downloaded = 0
        self.attempted = 0
        self.error = None

    def sample(self) -> list:
        if not self.urls:
            return []
        return sample_buckets(self.urls, self.settings.sample_count, self.rng)

    def _report(self, value: float):
        if self.progress is not None:
            self.progress(value)

    def scrape(self):
        samples = self.sample()
        if not samples:
            self.logger.info("[%s] No pages to scrape", self.name)
            return

        for i, url in enumerate(samples):
            delay = self.rng.uniform(self.settings.min_delay, self.settings.max_delay)
            if self.cancel_event.wait(delay):
                self.logger.info("[%s] Cancelled after %d/%d page(s)", self.name, i, len(samples))
                break

            file = disk_path(self.download_path, url)
            self.attempted += 1
            if self.downloader.download(url, file):
                self.downloaded += 1
                self.channel.put(str(file))
            else:
                self.logger.warning("[%s] Failed to download %s", self.name, url)

            self._report((i + 1) / len(samples))

    def run(self):
        try:
            self.scrape()
        except Exception as e:
            # Re-raised by the consumer after join()
            self.error = e
            self.logger.exception("[%s] Scrape failed", self.name)
        finally:
            self.channel.close()

    def stop(self):
        self.cancel_event.set()
