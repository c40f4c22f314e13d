# src/coverage_enhancer/core/utils/path_utils.py
import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving package paths and for
    normalizing report paths relative to the coverage root.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """Returns the absolute path of the coverage_enhancer package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    # --- Report helpers ---

    @staticmethod
    def relative_directory(path: Union[str, Path], root: Union[str, Path]) -> str:
        """
        Returns the directory of `path` relative to `root`, forward-slash
        separated and without a leading slash. The root itself maps to "".
        (e.g., /work/coverage/pkg/sub/index.html -> "pkg/sub")
        """
        directory = Path(path).resolve().parent
        base = Path(root).resolve()
        try:
            relative = directory.relative_to(base)
        except ValueError:
            logger.warning("Directory %s is outside of root %s, using its full path.", directory, base)
            relative = directory
        text = relative.as_posix().replace("\\", "/").lstrip("/")
        return "" if text == "." else text

    @staticmethod
    def sibling(path: Union[str, Path], name: str) -> Path:
        """Returns the path of a file named `name` in the same directory as `path`."""
        return Path(path).resolve().parent / name
