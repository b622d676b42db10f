# hostcrawler/storage/site_store.py
import json
from pathlib import Path

from hostcrawler.normalizer import local_path


def write_site(site) -> Path:
    site.site_file.parent.mkdir(parents=True, exist_ok=True)
    site.site_file.write_text(json.dumps(site.to_dict(), indent=2), encoding="utf-8")
    return site.site_file


def write_url_list(path, urls) -> Path:
    """One local path per line, next to the robots file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = sorted(local_path(u) for u in urls)
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path
