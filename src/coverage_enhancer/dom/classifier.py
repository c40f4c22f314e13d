# src/coverage_enhancer/dom/classifier.py
import logging
from pathlib import Path
from typing import Union

from bs4 import BeautifulSoup

from coverage_enhancer.core.errors import DocumentParseError
from coverage_enhancer.model import CoverageDocument, DocumentKind

logger = logging.getLogger(__name__)

REPORT_TITLE_MARKER = "Coverage report"
GLOBAL_SUMMARY_SELECTOR = "table.global-summary"


def parse_document(raw: Union[bytes, str], path: Union[str, Path]) -> CoverageDocument:
    """
    Parses raw file content into a CoverageDocument and classifies it.

    Raises:
        DocumentParseError: if the content cannot be decoded or parsed.
    """
    path = Path(path)
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        soup = BeautifulSoup(text, "html.parser")
    except (UnicodeDecodeError, AssertionError, ValueError) as e:
        raise DocumentParseError(f"Could not parse {path}: {e}", path) from e

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""
    document = CoverageDocument(path=path, soup=soup, title=title)
    document.kind = classify(document)
    return document


def classify(document: CoverageDocument) -> DocumentKind:
    """
    Decides whether a document is a processable coverage report.
    A previously written global summary is recognized first so that it is
    never folded into itself on a re-run.
    """
    if document.soup.select_one(GLOBAL_SUMMARY_SELECTOR) is not None:
        logger.debug("Skipped %s as it is the global summary", document.path)
        return DocumentKind.SUMMARY

    if REPORT_TITLE_MARKER not in document.title:
        logger.warning("Skipped %s as it does not seem to be a coverage report", document.path)
        return DocumentKind.UNRELATED

    return DocumentKind.REPORT
