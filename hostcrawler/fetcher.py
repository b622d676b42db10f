# hostcrawler/fetcher.py
import logging
from pathlib import Path

import requests

from hostcrawler.config import REQUEST_TIMEOUT, USER_AGENT

CHUNK_SIZE = 64 * 1024


class Downloader:
    """
    Streams a single URL to a file on disk.

    Fails closed: any non-200 status, network error or filesystem error
    is logged and reported as False, nothing is raised to the caller.
    """

    def __init__(self, user_agent=USER_AGENT, timeout=REQUEST_TIMEOUT,
                 session=None, logger=None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.logger = logger or logging.getLogger(__name__)

    def download(self, uri: str, dest_path) -> bool:
        dest = Path(dest_path)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with self.session.get(uri, timeout=self.timeout, stream=True,
                                  allow_redirects=True) as resp:
                if resp.status_code != 200:
                    self.logger.warning("Download of %s failed: HTTP %s", uri, resp.status_code)
                    return False

                with open(dest, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            return True

        except (requests.RequestException, OSError) as e:
            self.logger.error("Download of %s to %s failed: %s", uri, dest, e)
            return False

    def close(self):
        self.session.close()
