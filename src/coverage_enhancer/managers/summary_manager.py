# src/coverage_enhancer/managers/summary_manager.py
import copy
import logging
import posixpath
from pathlib import Path
from typing import Dict, List, Optional, Set, Union
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from coverage_enhancer.dom.writer import serialize_document, write_bytes_atomic
from coverage_enhancer.model import CoverageDocument, SummaryRow

logger = logging.getLogger(__name__)

SUMMARY_TABLE_SELECTOR = "table.coverage-summary"
GLOBAL_SUMMARY_CLASS = "global-summary"
ROW_SELECTOR = "tbody tr"
FILE_LINK_SELECTOR = ".file a"
# Drill-down navigation and per-directory rows removed from the template
TEMPLATE_STRIP_SELECTOR = f".pad1:first-child, .status-line, {SUMMARY_TABLE_SELECTOR} {ROW_SELECTOR}"
URL_ATTRIBUTES = ("href", "src")


def _prefix(directory: str, value: str) -> str:
    return f"{directory}/{value}" if directory else value


def rebase_url(directory: str, url: str) -> str:
    """
    Rewrites a URL relative to `directory` so it resolves from the root.
    Absolute URLs, fragments and paths escaping the root are returned as is.
    """
    if not directory or not url:
        return url
    parts = urlsplit(url)
    if parts.scheme or parts.netloc or url.startswith(("/", "#", "?")):
        return url
    rebased = posixpath.normpath(posixpath.join(directory, url))
    if rebased == ".." or rebased.startswith("../"):
        return url
    return rebased


class GlobalSummary:
    """
    Merges the per-directory summary tables of a run into one table.

    The first qualifying index document becomes the template; every folded
    row is keyed by its root-relative path and kept in folding order. A
    summary left by a previous run can seed the template and rows, so rows
    whose directory is not folded again survive. The controller owns one
    instance per run and is its only writer.
    """

    def __init__(self):
        self.template: Optional[BeautifulSoup] = None
        self.rows: Dict[str, SummaryRow] = {}
        self.folded_directories: Set[str] = set()

    @property
    def paths(self) -> List[str]:
        return list(self.rows.keys())

    def __len__(self) -> int:
        return len(self.rows)

    def _init_template(self, document: CoverageDocument, directory: str = "") -> None:
        template = copy.copy(document.soup)
        table = template.select_one(SUMMARY_TABLE_SELECTOR)
        classes = table.get("class", [])
        if GLOBAL_SUMMARY_CLASS not in classes:
            table["class"] = list(classes) + [GLOBAL_SUMMARY_CLASS]
        for element in template.select(TEMPLATE_STRIP_SELECTOR):
            element.extract()

        # Assets such as ../base.css are relative to the source directory
        for attribute in URL_ATTRIBUTES:
            for element in template.find_all(attrs={attribute: True}):
                element[attribute] = rebase_url(directory, element[attribute])

        self.template = template
        logger.debug("Global summary template initialized from %s", document.path)

    def seed(self, document: CoverageDocument) -> int:
        """
        Loads the template and rows of an existing global summary.
        Returns the number of rows loaded.
        """
        table = document.soup.select_one(f"table.{GLOBAL_SUMMARY_CLASS}")
        if table is None:
            return 0

        self._init_template(document)
        loaded = 0
        for row in table.select(ROW_SELECTOR):
            link = row.select_one(FILE_LINK_SELECTOR)
            if link is None:
                continue
            path = link.get_text(strip=True)
            self.rows[path] = SummaryRow(
                path=path, label=path, href=link.get("href", ""), row=copy.copy(row), seeded=True
            )
            loaded += 1

        logger.debug("Seeded %d row(s) from existing summary %s", loaded, document.path)
        return loaded

    def fold(self, document: CoverageDocument, directory: str) -> int:
        """
        Copies the file rows of a directory index into the summary, prefixing
        labels and links with `directory`. Sub-directory rows are skipped.
        Returns the number of rows added.
        """
        table = document.soup.select_one(SUMMARY_TABLE_SELECTOR)
        if table is None:
            logger.warning("No summary table in %s, not added to the global summary", document.path)
            return 0

        if self.template is None:
            self._init_template(document, directory)
        self.folded_directories.add(directory)

        added = 0
        for row in table.select(ROW_SELECTOR):
            link = row.select_one(FILE_LINK_SELECTOR)
            if link is None:
                logger.debug("Row without file link in %s skipped", document.path)
                continue
            label = link.get_text(strip=True)
            if label.endswith("/"):
                continue

            clone: Tag = copy.copy(row)
            clone_link = clone.select_one(FILE_LINK_SELECTOR)
            path = _prefix(directory, label)
            href = _prefix(directory, link.get("href", ""))
            clone_link.string = path
            clone_link["href"] = href

            previous = self.rows.get(path)
            if previous is not None and not previous.seeded:
                logger.warning("Duplicate summary entry %s, keeping the latest row", path)
            self.rows[path] = SummaryRow(path=path, label=path, href=href, row=clone)
            added += 1

        logger.debug("Folded %d row(s) from %s", added, directory or ".")
        return added

    def prune_stale(self) -> int:
        """
        Drops seeded rows of directories folded in this run that no longer
        list them. Returns the number of rows dropped.
        """
        stale = [
            path for path, entry in self.rows.items()
            if entry.seeded and posixpath.dirname(path) in self.folded_directories
        ]
        for path in stale:
            del self.rows[path]
        if stale:
            logger.info("Removed %d stale summary row(s)", len(stale))
        return len(stale)

    def render(self) -> Optional[str]:
        """Serializes the template with every folded row, or None if nothing was folded."""
        if self.template is None:
            return None
        output = copy.copy(self.template)
        table = output.select_one(SUMMARY_TABLE_SELECTOR)
        tbody = table.find("tbody")
        if tbody is None:
            tbody = output.new_tag("tbody")
            table.append(tbody)
        for entry in self.rows.values():
            tbody.append(copy.copy(entry.row))
        return serialize_document(output)

    def write(self, path: Union[str, Path]) -> bool:
        """Writes the summary to `path`. Returns False when there was nothing to write."""
        if self.template is None:
            logger.warning("No coverage index was found, global summary not written")
            return False
        write_bytes_atomic(path, self.render().encode("utf-8"))
        logger.info("Updated summary %s (%d rows)", path, len(self.rows))
        return True
