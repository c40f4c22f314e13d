import logging
from pathlib import Path
from typing import Iterable, List, Set, Union

from coverage_enhancer.core.errors import DiscoveryError

logger = logging.getLogger(__name__)


def _expand(root: Path, pattern: str) -> List[Path]:
    """Expands one glob relative to root, sorted for a deterministic order."""
    pattern = pattern.replace("\\", "/").lstrip("/")
    if pattern.startswith("./"):
        pattern = pattern[2:]
    try:
        return sorted(p.resolve() for p in root.glob(pattern))
    except (ValueError, NotImplementedError) as e:
        # pathlib rejects some patterns (e.g. empty or absolute ones)
        logger.warning("Ignoring invalid glob pattern '%s': %s", pattern, e)
        return []


def _is_excluded(path: Path, excluded: Set[Path]) -> bool:
    """A path is excluded when it, or one of its parent directories, matched an exclusion."""
    if path in excluded:
        return True
    return any(parent in excluded for parent in path.parents)


def discover_documents(
        root: Union[str, Path],
        globs: Iterable[str],
        excludes: Iterable[str] = (),
) -> List[Path]:
    """
    Resolves glob patterns under `root` into an ordered list of absolute file paths.

    Patterns are resolved in the order given and each pattern's matches are
    sorted. A file matched by several patterns is listed once, at its first
    position. An exclusion matching a directory removes everything below it.

    Raises:
        DiscoveryError: if `root` does not exist or is not a directory.
    """
    globs = list(globs)
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        raise DiscoveryError(f"Root directory not found: {root_path}", root_path)

    excluded: Set[Path] = set()
    for pattern in excludes:
        matches = _expand(root_path, pattern)
        logger.debug("Exclusion '%s' matched %d path(s)", pattern, len(matches))
        excluded.update(matches)

    seen: Set[Path] = set()
    discovered: List[Path] = []
    for pattern in globs:
        logger.debug("Processing glob: %s", pattern)
        for path in _expand(root_path, pattern):
            if path in seen or not path.is_file() or _is_excluded(path, excluded):
                continue
            seen.add(path)
            discovered.append(path)

    if not discovered:
        logger.warning("No files matched %s under %s", list(globs), root_path)
    else:
        logger.debug("Discovered %d file(s) under %s", len(discovered), root_path)
    return discovered
