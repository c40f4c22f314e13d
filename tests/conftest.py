# tests/conftest.py
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from coverage_enhancer.core.errors import BadgeServiceError
from coverage_enhancer.model import EnhanceSettings

STUB_SVG = b'<svg xmlns="http://www.w3.org/2000/svg"><text>stub</text></svg>'


def make_index_report(title: str, rows: List[Tuple[str, str, str]], overall: str) -> str:
    """
    Builds a directory index as written by `deno coverage --html`.
    `rows` holds (label, href, percentage) triples.
    """
    body_rows = "\n".join(
        f'<tr><td class="file high" data-value="{label}"><a href="{href}">{label}</a></td>'
        f'<td data-value="{pct}" class="pic high"><div class="chart"></div></td>'
        f'<td data-value="{pct}" class="pct high">{pct}%</td></tr>'
        for label, href, pct in rows
    )
    return f"""<!doctype html>
<html lang="en-us">
<head>
<title>{title}</title>
<meta charset="utf-8">
<link rel="stylesheet" href="../base.css">
</head>
<body>
<div class="wrapper">
<div class="pad1">
<h1><a href="../index.html">All files</a> / pkg</h1>
<div class="clearfix">
<div class="fl pad1y space-right2"><span class="strong">100.00% </span><span class="quiet">Branches</span></div>
<div class="fl pad1y space-right2"><span class="strong">{overall} </span><span class="quiet">Lines</span></div>
</div>
</div>
<div class="status-line high"></div>
<div class="pad1">
<table class="coverage-summary">
<thead><tr><th class="file">File</th><th class="pic"></th><th class="pct">Lines</th></tr></thead>
<tbody>
{body_rows}
</tbody>
</table>
</div>
</div>
</body>
</html>
"""


def make_source_report(title: str, code: str) -> str:
    """Builds a per-file report holding one source snippet."""
    return f"""<!doctype html>
<html lang="en-us">
<head>
<title>{title}</title>
<meta charset="utf-8">
</head>
<body>
<table class="coverage"><tr><td class="text"><pre class="prettyprint lang-js">{code}</pre></td></tr></table>
</body>
</html>
"""


class StubBadgeRenderer:
    """Deterministic badge renderer recording every request."""

    def __init__(self, svg: bytes = STUB_SVG, fail_on: Optional[str] = None):
        self.svg = svg
        self.fail_on = fail_on
        self.calls: List[Tuple[str, str, str]] = []

    async def render(self, label: str, message: str, color: str) -> bytes:
        self.calls.append((label, message, color))
        if self.fail_on is not None and message == self.fail_on:
            raise BadgeServiceError(f"stubbed failure for {message}")
        return self.svg


@pytest.fixture
def badge_renderer():
    return StubBadgeRenderer()


@pytest.fixture
def coverage_root(tmp_path) -> Path:
    """
    A coverage tree with two packages:
      pkg1: x.ts (90%), y.ts (70%) and a sub/ directory row, overall 82.35%
      pkg2: z.ts (40%), overall 40.00%
    plus one unrelated html file.
    """
    root = tmp_path / "coverage"
    (root / "pkg1").mkdir(parents=True)
    (root / "pkg2").mkdir(parents=True)

    (root / "pkg1" / "index.html").write_text(make_index_report(
        "Coverage report for pkg1",
        [("x.ts", "x.ts.html", "90"), ("y.ts", "y.ts.html", "70"), ("sub/", "sub/index.html", "100")],
        "82.35%",
    ), encoding="utf-8")
    (root / "pkg1" / "x.ts.html").write_text(make_source_report(
        "Coverage report for pkg1/x.ts", "const x: number = 1;\nexport default x;\n"
    ), encoding="utf-8")
    (root / "pkg1" / "y.ts.html").write_text(make_source_report(
        "Coverage report for pkg1/y.ts", "export function y(a: string): string {\n  return a;\n}\n"
    ), encoding="utf-8")
    (root / "pkg2" / "index.html").write_text(make_index_report(
        "Coverage report for pkg2",
        [("z.ts", "z.ts.html", "40")],
        "40.00%",
    ), encoding="utf-8")
    (root / "notes.html").write_text(
        "<!doctype html><html><head><title>Release notes</title></head><body><p>hi</p></body></html>",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def settings(coverage_root) -> EnhanceSettings:
    return EnhanceSettings(root=coverage_root, show_progress=False)


def snapshot(root: Path) -> dict:
    """Maps every file under root to its bytes."""
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}
