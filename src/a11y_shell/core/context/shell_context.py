# src/a11y_shell/core/context/shell_context.py
import logging
from typing import Optional

from a11y_shell.core.managers.config_manager import config_manager
from a11y_shell.core.managers.database_manager import DatabaseManager
from a11y_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ShellContext:
    """
    Holds the state shared by command handlers for one CLI invocation:
    session variables and the lazily opened audit database.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self._vars = {}
        self._db_manager = db_manager

    @property
    def db_manager(self) -> DatabaseManager:
        if self._db_manager is None:
            file_name = config_manager.get_nested("database.file_name", "audits.db")
            self._db_manager = DatabaseManager(PathUtils.get_db_path(file_name))
        return self._db_manager

    def set(self, key: str, value: str) -> None:
        """Sets a context variable."""
        self._vars[key] = value

    def get(self, key: str) -> Optional[str]:
        """Retrieves a context variable. Returns None if key does not exist."""
        return self._vars.get(key)

    def close(self) -> None:
        if self._db_manager is not None:
            self._db_manager.close_connections()

    def __repr__(self) -> str:
        return f"<ShellContext audit={self.get('audit.id')} vars_count={len(self._vars)}>"
