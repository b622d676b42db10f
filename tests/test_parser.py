"""Tests for URL helpers and link extraction."""

from pathlib import Path

import pytest

from hostcrawler.normalizer import (
    disk_path, host_name, host_uri, is_resource, local_path, normalize_seed,
)
from hostcrawler.parser import extract_hosts, iter_hrefs, parse_file


class TestNormalizer:
    """Host URIs and on-disk paths."""

    @pytest.mark.parametrize("href, expected", [
        ("https://Example.COM/a/b?q=1", "https://example.com"),
        ("https://example.com:8443/x", "https://example.com:8443"),
        ("http://example.com/", None),
        ("mailto:someone@example.com", None),
        ("/relative/path", None),
        ("https://", None),
    ])
    def test_host_uri(self, href, expected):
        assert host_uri(href, "https") == expected

    def test_host_uri_any_web_scheme(self):
        assert host_uri("http://example.com/") == "http://example.com"

    def test_normalize_seed(self):
        assert normalize_seed(" example.com ", "https") == "https://example.com"
        assert normalize_seed("http://example.com/page", "https") == "http://example.com"
        assert normalize_seed("ftp://example.com", "https") is None

    def test_host_name(self):
        assert host_name("https://a.com:8443") == "https_a.com_8443"
        assert host_name("http://a.com") != host_name("https://a.com")

    def test_local_path_and_resource(self):
        assert local_path("https://a.com") == "/"
        assert is_resource("https://a.com/a.html")
        assert not is_resource("https://a.com/blog/")

    def test_disk_path_stays_under_root(self, tmp_path):
        assert disk_path(tmp_path, "https://a.com/../../etc/passwd") == tmp_path / "etc" / "passwd"
        assert disk_path(tmp_path, "https://a.com/docs/") == tmp_path / "docs" / "index.html"
        assert disk_path(tmp_path, "https://a.com", default_name="sitemap.xml") == tmp_path / "sitemap.xml"


class TestParser:
    """href extraction from raw HTML."""

    def test_quoting_styles(self):
        html = """<a href="one">1</a><a href='two'>2</a><a HREF = three>3</a><a href="">"""
        assert list(iter_hrefs(html)) == ["one", "two", "three"]

    def test_extract_hosts(self):
        html = (
            '<a href="https://b.com/x">b</a><a href="https://b.com/y">b</a>'
            '<a href="/local">self</a><a href="http://c.com/">http</a>'
            '<link href="https://cdn.d.com/style.css">'
        )
        assert extract_hosts(html, "https://a.com", "https") == {
            "https://b.com", "https://a.com", "https://cdn.d.com",
        }

    def test_parse_file_tolerates_bad_bytes(self, tmp_path):
        f = Path(tmp_path) / "page.html"
        f.write_bytes(b'\xff\xfe<a href="https://b.com/">b</a>')
        assert parse_file(f, "https://a.com", "https") == {"https://b.com"}
