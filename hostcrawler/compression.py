import gzip
import shutil
from pathlib import Path

GZIP_MAGIC = b"\x1f\x8b"


def is_gzip(path) -> bool:
    """Detect gzip content by magic bytes, the file extension is not trusted."""
    path = Path(path)
    if not path.is_file():
        return False
    with open(path, "rb") as f:
        return f.read(2) == GZIP_MAGIC


def decompress(source, target):
    with gzip.open(source, "rb") as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)


def compress(source, target):
    with open(source, "rb") as src, gzip.open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)
