import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote

import aiohttp
from bs4 import BeautifulSoup

from coverage_enhancer.core.errors import BadgeServiceError
from coverage_enhancer.core.utils.path_utils import PathUtils
from coverage_enhancer.dom.writer import write_bytes_atomic
from coverage_enhancer.model import Badge, BadgeTier, CoverageDocument, EnhanceSettings

logger = logging.getLogger(__name__)

# Last column of the top-level breakdown line in an istanbul report header
COVERAGE_SELECTOR = ".clearfix .fl:last-child .strong"

# Leading decimal number, the way JavaScript's parseFloat reads "85.71% "
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_coverage_value(text: Optional[str]) -> Optional[float]:
    """Parses the leading number of a percentage text. Returns None when there is none."""
    if not text:
        return None
    match = _LEADING_FLOAT.match(text)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def tier_for(value: Optional[float]) -> BadgeTier:
    """Maps a coverage percentage to its badge tier."""
    if value is None or value != value or value in (float("inf"), float("-inf")):
        return BadgeTier.UNKNOWN
    if value >= 80:
        return BadgeTier.HIGH
    if value >= 60:
        return BadgeTier.MEDIUM
    return BadgeTier.LOW


def extract_coverage_text(soup: BeautifulSoup) -> Optional[str]:
    """
    Reads the overall percentage text from its fixed location.
    A report with a different column layout yields None rather than another column.
    """
    cell = soup.select_one(COVERAGE_SELECTOR)
    if cell is None:
        return None
    text = cell.get_text(strip=True)
    return text or None


def build_badge(document: CoverageDocument) -> Badge:
    """Computes value, tier and display text of a report's badge (no rendering)."""
    text = extract_coverage_text(document.soup)
    value = parse_coverage_value(text)
    tier = tier_for(value)
    if tier is BadgeTier.UNKNOWN:
        logger.warning("Could not extract a coverage percentage from %s", document.path)
    return Badge(value=value, tier=tier, text=text or "-")


def _escape_static(part: str) -> str:
    """Escapes the static badge separators: '-' and '_' are doubled."""
    return part.replace("-", "--").replace("_", "__")


def badge_url(endpoint: str, label: str, message: str, color: str) -> str:
    """Builds the shields.io static badge URL for a label/message/color triple."""
    segment = f"{_escape_static(label)}-{_escape_static(message)}-{color.lstrip('#')}"
    return f"{endpoint.rstrip('/')}/{quote(segment, safe='')}"


class BadgeRenderer(Protocol):
    """Anything able to turn a label/message/color triple into SVG bytes."""

    async def render(self, label: str, message: str, color: str) -> bytes:
        ...


class ShieldsBadgeService:
    """
    Renders badges through the shields.io static badge endpoint.
    One aiohttp session is shared by every request of a run.
    """

    def __init__(self, endpoint: str = "https://img.shields.io/badge", timeout: float = 10.0):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            logger.debug("Badge service initialized (timeout: %ss)", self.timeout)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()

    async def render(self, label: str, message: str, color: str) -> bytes:
        await self.initialize()
        url = badge_url(self.endpoint, label, message, color)
        logger.debug("Requesting badge: %s", url)
        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                return await response.read()
        except asyncio.TimeoutError as e:
            raise BadgeServiceError(f"Badge request timed out after {self.timeout}s: {url}") from e
        except aiohttp.ClientError as e:
            raise BadgeServiceError(f"Badge request failed: {url}: {e}") from e


async def generate_badge(
        document: CoverageDocument,
        renderer: BadgeRenderer,
        settings: EnhanceSettings,
) -> Badge:
    """
    Renders the badge of a directory index and writes it beside the document.

    Raises:
        BadgeServiceError: if rendering failed; no badge file is written then.
        DocumentWriteError: if the badge file could not be written.
    """
    badge = build_badge(document)
    badge.svg = await renderer.render(settings.badge_label, badge.text, badge.tier.color)

    target: Path = PathUtils.sibling(document.path, settings.badge_file_name)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, write_bytes_atomic, target, badge.svg)
    logger.info("Generated badge %s (%s, %s)", target, badge.text, badge.tier.value)
    return badge
