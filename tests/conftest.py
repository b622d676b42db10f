import threading
from pathlib import Path

import pytest


class FakeDownloader:
    """Serves canned bodies by URL, unknown URLs fail like a 404."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requested = []
        self._lock = threading.Lock()

    def download(self, uri, dest_path):
        with self._lock:
            self.requested.append(uri)

        body = self.pages.get(uri)
        if body is None:
            return False

        dest = Path(dest_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(body if isinstance(body, bytes) else body.encode("utf-8"))
        return True


def build_sitemap(index=(), urls=()):
    ns = "http://www.sitemaps.org/schemas/sitemap/0.9"
    if index:
        body = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in index)
        return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{ns}">{body}</sitemapindex>'
    body = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{ns}">{body}</urlset>'


@pytest.fixture
def fake_downloader():
    return FakeDownloader


@pytest.fixture
def sitemap_xml():
    return build_sitemap
