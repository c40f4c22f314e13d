import logging
from typing import Iterable

from bs4 import BeautifulSoup, Tag

from coverage_enhancer.model import CoverageDocument

logger = logging.getLogger(__name__)


def _ensure_head(soup: BeautifulSoup) -> Tag:
    """Returns the document <head>, creating one when the report has none."""
    head = soup.find("head")
    if head is not None:
        return head
    head = soup.new_tag("head")
    html = soup.find("html")
    if html is not None:
        html.insert(0, head)
    else:
        soup.insert(0, head)
    return head


def stylesheet_url(base_url: str, name: str) -> str:
    return f"{base_url.rstrip('/')}/{name}/mod.css"


def has_stylesheet(soup: BeautifulSoup, name: str) -> bool:
    """True when a <link> whose href contains the asset name is already present."""
    for link in soup.find_all("link", href=True):
        if name in link["href"]:
            return True
    return False


def apply_theme(document: CoverageDocument, base_url: str, assets: Iterable[str]) -> int:
    """
    Appends a stylesheet reference for each matcha.css asset missing from the head.
    Returns the number of references added (0 on an already themed report).
    """
    soup = document.soup
    added = 0
    for name in assets:
        if has_stylesheet(soup, name):
            logger.debug("%s already themed with matcha/%s", document.path, name)
            continue
        stylesheet = soup.new_tag("link", attrs={"rel": "stylesheet", "href": stylesheet_url(base_url, name)})
        _ensure_head(soup).append(stylesheet)
        added += 1
        logger.debug("Added stylesheet matcha/%s to %s", name, document.path)

    if added:
        logger.info("Themed %s with matcha", document.path)
    return added
