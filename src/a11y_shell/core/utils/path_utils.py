# src/a11y_shell/core/utils/path_utils.py
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important project and user paths.
    """

    # --- Project specific paths

    @staticmethod
    def get_project_root() -> Path:
        """
        Returns the absolute path of the project root.
        Searches upwards for a directory containing 'src' and 'pyproject.toml'.
        Falls back to the current working directory for non-editable installs.
        """
        current_path = Path(__file__).resolve().parent
        while current_path != current_path.parent:
            src_dir = current_path / "src"
            pyproject_toml = current_path / "pyproject.toml"
            if src_dir.is_dir() and pyproject_toml.is_file():
                return current_path
            current_path = current_path.parent
        logger.debug("No project root found above %s, using cwd.", Path(__file__))
        return Path.cwd()

    @staticmethod
    def get_shell_package_root() -> Path:
        # core/utils/path_utils.py -> a11y_shell
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_cache_root() -> Path:
        """
        Returns the root directory for the application cache located in the PROJECT ROOT.
        (e.g., /path/to/a11y-sampler/.a11y_cache)
        """
        return PathUtils.get_project_root() / ".a11y_cache"

    # --- Helper methods ---

    @staticmethod
    def get_db_path(file_name: str = "audits.db", base_dir: Optional[Path] = None) -> Path:
        """
        Returns the path to the SQLite database file holding all audits.
        Creates the parent directory if it doesn't exist.
        """
        root = base_dir if base_dir else PathUtils.get_cache_root()
        root.mkdir(parents=True, exist_ok=True)
        return root / file_name
