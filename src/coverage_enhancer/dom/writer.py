# src/coverage_enhancer/dom/writer.py
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from bs4 import BeautifulSoup, Doctype

from coverage_enhancer.core.errors import DocumentWriteError

logger = logging.getLogger(__name__)

DOCTYPE = "<!DOCTYPE html>"


def serialize_document(soup: BeautifulSoup) -> str:
    """
    Serializes a tree as a doctype followed by its <html> element.
    Anything outside <html> (old doctype, stray whitespace) is dropped, which
    keeps the output stable when it is parsed and serialized again.
    """
    html = soup.find("html")
    if html is not None:
        return f"{DOCTYPE}{html}"
    body = "".join(str(node) for node in soup.contents if not isinstance(node, Doctype))
    return f"{DOCTYPE}{body.strip()}"


def write_bytes_atomic(path: Union[str, Path], data: bytes) -> None:
    """
    Writes bytes through a temporary file in the same directory, then moves it
    into place so a failure never leaves a truncated file behind.
    """
    path = Path(path)
    try:
        # mkstemp creates 0600 files; keep the mode of the file being replaced
        mode = path.stat().st_mode & 0o777 if path.exists() else 0o644
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise DocumentWriteError(f"Could not write {path}: {e}", path) from e


def write_document(soup: BeautifulSoup, path: Union[str, Path]) -> None:
    """Overwrites `path` with the serialized document. No backup is kept."""
    write_bytes_atomic(path, serialize_document(soup).encode("utf-8"))
    logger.debug("Wrote %s", path)
