"""
URL helpers shared by the policy, sitemap and scheduler modules.
Hosts are plain strings of the form scheme://host[:port].
"""

from pathlib import Path
from urllib.parse import urlsplit

WEB_SCHEMES = ("http", "https")


def host_uri(href: str, scheme: str = None):
    """
    Reduce an absolute URL to its host URI.

    Returns None for relative or malformed URLs and for schemes other
    than `scheme` (any web scheme when `scheme` is None).
    """
    try:
        parts = urlsplit(href.strip())
        port = parts.port
    except ValueError:
        return None

    s = parts.scheme.lower()
    if s not in WEB_SCHEMES:
        return None
    if scheme is not None and s != scheme:
        return None
    if not parts.hostname:
        return None

    host = parts.hostname.lower()
    if port is not None:
        host = f"{host}:{port}"
    return f"{s}://{host}"


def normalize_seed(raw: str, scheme: str):
    s = raw.strip()
    if "://" not in s:
        s = f"{scheme}://{s}"
    return host_uri(s)


def host_name(host: str) -> str:
    """Directory-safe name of a host URI, unique per scheme and port."""
    parts = urlsplit(host)
    return f"{parts.scheme}_{parts.netloc.replace(':', '_')}"


def local_path(url: str) -> str:
    return urlsplit(url).path or "/"


def is_resource(url: str) -> bool:
    """Resources do not end with a slash, roots do."""
    return not local_path(url).endswith("/")


def disk_path(root, url: str, default_name: str = "index.html") -> Path:
    """Map the path of a URL under `root` without ever leaving it."""
    path = local_path(url)
    parts = [p for p in path.split("/") if p not in ("", ".", "..")]
    if not parts or path.endswith("/"):
        parts.append(default_name)
    return Path(root).joinpath(*parts)
