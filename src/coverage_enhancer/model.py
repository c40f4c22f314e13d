# src/coverage_enhancer/model.py
from enum import Enum
from pathlib import Path
from typing import List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict, Field

from coverage_enhancer.core.managers.config_manager import ConfigManager, config_manager


class DocumentKind(str, Enum):
    REPORT = "report"
    SUMMARY = "summary"
    UNRELATED = "unrelated"


class BadgeTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"

    @property
    def color(self) -> str:
        return TIER_COLORS[self]


TIER_COLORS = {
    BadgeTier.HIGH: "#3fb950",
    BadgeTier.MEDIUM: "#db6d28",
    BadgeTier.LOW: "#f85149",
    BadgeTier.UNKNOWN: "#656d76",
}


class EnhanceSettings(BaseModel):
    """
    Every toggle and tunable of one enhancement run.
    Built once by the application and passed down to the controller.
    """
    root: Path = Field(default=Path("coverage"))
    globs: List[str] = Field(default_factory=lambda: ["**/*.html"])
    excludes: List[str] = Field(default_factory=list)

    write: bool = Field(default=True, description="Rewrite report files in place.")
    theme: bool = Field(default=True, description="Inject matcha.css stylesheets.")
    highlight: bool = Field(default=True, description="Syntax highlight source snippets.")
    badge: bool = Field(default=True, description="Generate badge.svg beside each index.")
    summary: bool = Field(default=True, description="Write the global summary at the root.")

    concurrency: int = Field(default=8, ge=1)
    show_progress: bool = True
    index_name: str = "index.html"

    theme_base_url: str = "https://matcha.mizu.sh/styles"
    theme_assets: List[str] = Field(
        default_factory=lambda: ["@root", "@syntax-highlighting", "@istanbul-coverage"]
    )
    highlight_language: str = "typescript"

    badge_endpoint: str = "https://img.shields.io/badge"
    badge_label: str = "Coverage"
    badge_file_name: str = "badge.svg"
    badge_timeout: float = Field(default=10.0, gt=0)

    @property
    def theme_enabled(self) -> bool:
        return self.write and self.theme

    @property
    def highlight_enabled(self) -> bool:
        return self.write and self.highlight

    @property
    def writes_documents(self) -> bool:
        """Documents are only written when a mutating stage actually ran."""
        return self.write and (self.theme or self.highlight)

    @classmethod
    def from_config(cls, config: Optional[ConfigManager] = None, **overrides) -> "EnhanceSettings":
        """
        Builds settings from settings.json values, then applies explicit overrides
        (typically coming from the command line). Overrides set to None are ignored.
        """
        config = config or config_manager
        values = {
            "root": config.get_nested("enhancer.root", "coverage"),
            "globs": [config.get_nested("enhancer.default_glob", "**/*.html")],
            "concurrency": config.get_nested("enhancer.concurrency", 8),
            "show_progress": config.get_nested("enhancer.show_progress", True),
            "index_name": config.get_nested("enhancer.index_name", "index.html"),
            "theme_base_url": config.get_nested("theme.base_url", "https://matcha.mizu.sh/styles"),
            "theme_assets": config.get_nested("theme.assets", ["@root", "@syntax-highlighting", "@istanbul-coverage"]),
            "highlight_language": config.get_nested("highlight.language", "typescript"),
            "badge_endpoint": config.get_nested("badge.endpoint", "https://img.shields.io/badge"),
            "badge_label": config.get_nested("badge.label", "Coverage"),
            "badge_file_name": config.get_nested("badge.file_name", "badge.svg"),
            "badge_timeout": config.get_nested("badge.timeout", 10),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class CoverageDocument(BaseModel):
    """
    One parsed HTML report file.

    Applied themes and highlighted snippets are not tracked here: they are
    derived from the tree itself (stylesheet hrefs, data-highlighted markers),
    which is what makes every stage idempotent across runs.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path
    soup: BeautifulSoup
    title: str = ""
    kind: DocumentKind = DocumentKind.UNRELATED

    def is_index(self, index_name: str = "index.html") -> bool:
        return self.path.name == index_name


class Badge(BaseModel):
    value: Optional[float] = None
    tier: BadgeTier = BadgeTier.UNKNOWN
    text: str = "-"
    svg: bytes = b""


class SummaryRow(BaseModel):
    """A single row of the global summary, keyed by its root-relative path."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str
    label: str
    href: str
    row: Tag
    seeded: bool = False


class DocumentResult(BaseModel):
    """Outcome of processing one discovered file."""
    path: str
    kind: Optional[DocumentKind] = None
    stylesheets_added: int = 0
    blocks_highlighted: int = 0
    written: bool = False
    badge_tier: Optional[BadgeTier] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
