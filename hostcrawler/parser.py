# hostcrawler/parser.py
import re
from pathlib import Path
from urllib.parse import urljoin

from hostcrawler.normalizer import host_uri

HREF_PATTERN = re.compile(
    r"""href\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""",
    re.IGNORECASE,
)


def iter_hrefs(text: str):
    for match in HREF_PATTERN.finditer(text):
        href = next((g for g in match.groups() if g is not None), "")
        if href:
            yield href


def extract_hosts(text: str, base_url: str, scheme: str) -> set:
    """
    Return the unique hosts a page links to.

    Relative links resolve against the page URL, so they point back to
    the page's own host.
    """
    hosts = set()
    for href in iter_hrefs(text):
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        host = host_uri(absolute, scheme)
        if host:
            hosts.add(host)
    return hosts


def parse_file(path, base_url: str, scheme: str) -> set:
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    return extract_hosts(text, base_url, scheme)
