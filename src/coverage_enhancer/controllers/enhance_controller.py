import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from coverage_enhancer.core.discovery import discover_documents
from coverage_enhancer.core.errors import EnhancerError, DocumentParseError
from coverage_enhancer.core.managers.progress_manager import ProgressManager
from coverage_enhancer.core.utils.path_utils import PathUtils
from coverage_enhancer.dom.classifier import parse_document
from coverage_enhancer.dom.highlighter import highlight_document
from coverage_enhancer.dom.theme import apply_theme
from coverage_enhancer.dom.writer import write_document
from coverage_enhancer.managers.summary_manager import GlobalSummary
from coverage_enhancer.model import CoverageDocument, DocumentKind, DocumentResult, EnhanceSettings
from coverage_enhancer.services.badge_service import BadgeRenderer, ShieldsBadgeService, generate_badge

logger = logging.getLogger(__name__)


class EnhanceController:
    """
    Runs the enhancement pipeline over one coverage tree.

    Files are processed concurrently (bounded by `settings.concurrency`):
    reading, parsing, theming, highlighting and writing happen in the default
    thread pool, badge requests go through a shared aiohttp session. Directory
    indexes are then folded into the global summary sequentially, in discovery
    order, so the summary has a single writer and a stable row order.
    """

    def __init__(self, settings: EnhanceSettings, badge_renderer: Optional[BadgeRenderer] = None):
        self.settings = settings
        self.badge_renderer = badge_renderer
        self.summary = GlobalSummary()
        self.results: List[DocumentResult] = []
        self.failures = 0

        self._semaphore: Optional[asyncio.Semaphore] = None
        self._progress: Optional[ProgressManager] = None

    @property
    def summary_path(self) -> Path:
        return Path(self.settings.root).resolve() / self.settings.index_name

    def _apply_stages(self, document: CoverageDocument, result: DocumentResult) -> None:
        """Theme and highlight stages. Blocking, meant for the executor."""
        if self.settings.theme_enabled:
            result.stylesheets_added = apply_theme(
                document, self.settings.theme_base_url, self.settings.theme_assets
            )
        if self.settings.highlight_enabled:
            result.blocks_highlighted = highlight_document(document, self.settings.highlight_language)

    async def _process(self, path: Path) -> Tuple[DocumentResult, Optional[CoverageDocument]]:
        """
        Processes one file. Every failure is contained here and recorded on the
        returned result. The document is returned only for directory indexes and
        for a global summary left at the root by a previous run.
        """
        result = DocumentResult(path=str(path))
        loop = asyncio.get_running_loop()

        async with self._semaphore:
            try:
                try:
                    raw = await loop.run_in_executor(None, path.read_bytes)
                except OSError as e:
                    raise DocumentParseError(f"Could not read {path}: {e}", path) from e

                document = await loop.run_in_executor(None, parse_document, raw, path)
                result.kind = document.kind
                if document.kind is DocumentKind.SUMMARY and path == self.summary_path:
                    return result, document
                if document.kind is not DocumentKind.REPORT:
                    return result, None

                await loop.run_in_executor(None, self._apply_stages, document, result)

                if self.settings.writes_documents:
                    try:
                        await loop.run_in_executor(None, write_document, document.soup, path)
                        result.written = True
                        logger.info("Updated %s", path)
                    except EnhancerError as e:
                        logger.error("Failed to write %s: %s", path, e)
                        result.error = str(e)

                if not document.is_index(self.settings.index_name):
                    return result, None

                if self.settings.badge and self.badge_renderer is not None:
                    try:
                        badge = await generate_badge(document, self.badge_renderer, self.settings)
                        result.badge_tier = badge.tier
                    except EnhancerError as e:
                        logger.error("Failed to generate badge for %s: %s", path, e)
                        result.error = str(e)

                return result, document

            except EnhancerError as e:
                logger.error("Skipped %s: %s", path, e)
                result.error = str(e)
                return result, None
            except Exception as e:
                logger.error("Unexpected error processing %s: %s", path, e, exc_info=True)
                result.error = str(e)
                return result, None
            finally:
                if result.failed:
                    self.failures += 1
                if self._progress:
                    self._progress.advance(failures_count=self.failures)

    def _fold(self, outcomes: List[Tuple[DocumentResult, Optional[CoverageDocument]]]) -> None:
        documents = [document for _, document in outcomes if document is not None]
        # A summary left by a previous run keeps rows no index provides anymore
        for document in documents:
            if document.kind is DocumentKind.SUMMARY:
                self.summary.seed(document)
        for document in documents:
            if document.kind is not DocumentKind.REPORT:
                continue
            directory = PathUtils.relative_directory(document.path, self.settings.root)
            self.summary.fold(document, directory)
        self.summary.prune_stale()

    async def _write_summary(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.summary.write, self.summary_path)
        except EnhancerError as e:
            logger.error("Failed to write global summary: %s", e)
            self.failures += 1
            return False

    async def _run_files(self, paths: List[Path]) -> None:
        self._progress = ProgressManager(
            total=len(paths), desc="Enhancing coverage", disable=not self.settings.show_progress
        )
        try:
            outcomes = await asyncio.gather(*(self._process(path) for path in paths))
        finally:
            self._progress.close(final_failures=self.failures)
            self._progress = None

        self.results = [result for result, _ in outcomes]
        self._fold(outcomes)

    async def run(self) -> List[DocumentResult]:
        """
        Executes one run and returns the per-file results.

        Raises:
            DiscoveryError: if the root directory cannot be searched.
        """
        settings = self.settings
        paths = discover_documents(settings.root, settings.globs, settings.excludes)
        self._semaphore = asyncio.Semaphore(settings.concurrency)

        if settings.badge and self.badge_renderer is None:
            async with ShieldsBadgeService(settings.badge_endpoint, settings.badge_timeout) as service:
                self.badge_renderer = service
                try:
                    await self._run_files(paths)
                finally:
                    self.badge_renderer = None
        else:
            await self._run_files(paths)

        if settings.summary:
            await self._write_summary()
        else:
            logger.debug("Global summary writing disabled")

        self._log_report()
        return self.results

    def _log_report(self) -> None:
        reports = [r for r in self.results if r.kind is DocumentKind.REPORT]
        skipped = [r for r in self.results if r.kind in (DocumentKind.SUMMARY, DocumentKind.UNRELATED)]
        logger.info(
            "Processed %d file(s): %d report(s), %d skipped, %d written, %d badge(s), %d summary row(s), %d failure(s)",
            len(self.results),
            len(reports),
            len(skipped),
            sum(1 for r in reports if r.written),
            sum(1 for r in reports if r.badge_tier is not None),
            len(self.summary),
            self.failures,
        )
