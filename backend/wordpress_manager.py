"""
WordPress Manager

Single source of truth for "do we have a configuration, and are we connected"
for one WordPress installation. Configuration discovery and the database
connection are both established lazily and idempotently; concurrent callers
share one in-flight attempt.

State machine:
    UNCONFIGURED -> CONFIGURED -> CONNECTED
    disconnect():            CONNECTED -> CONFIGURED (configuration kept)
    refresh_configuration(): configuration replaced wholesale; an open
                             connection is closed if the credentials changed
    set_workspace_roots():   a change drops the configuration; the next use
                             re-discovers and reconnects if credentials differ
"""

import asyncio
import logging
import os
import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from core.signals import Signal
from backend.errors import ConfigNotFound, ConnectionFailed, QueryFailed
from backend.utils.filesystem import LocalFileSystem
from backend.utils.wp_config_finder import find_wordpress_config
from backend.utils.wp_config_parser import WordPressConfig, load_wordpress_config

logger = logging.getLogger("wordpress_manager")

TEMPLATE_EXTENSION = ".php"
TEMPLATE_HEADER_MARKER = "Template Name:"

STANDARD_TEMPLATES = frozenset([
    "index.php",
    "single.php",
    "page.php",
    "archive.php",
    "category.php",
    "tag.php",
    "author.php",
    "search.php",
    "404.php",
    "front-page.php",
    "home.php",
    "singular.php",
])

BUILTIN_POST_TYPES = ("post", "page", "attachment", "revision", "nav_menu_item")
CUSTOM_POST_TYPE_LIMIT = 20

# Custom Post Type UI stores its registry here as a PHP-serialized array
CPTUI_OPTION = "cptui_post_types"
_SERIALIZED_STRING_RE = re.compile(r's:\d+:"([^"]+)"')

_TABLE_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+$")


class ConnectionState(Enum):
    """Readiness of a WordPressManager."""
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    CONNECTED = "connected"


@dataclass
class ThemeInfo:
    """The active theme and its template files (directory listing order)."""
    name: str
    path: str
    active: bool = True
    template_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WordPressManager:
    """
    Owns the parsed WordPress configuration and the live database connection.

    Collaborators are injected so the manager can run against fakes:
        driver: object with ``async connect(host, user, password, database)``
                returning a connection with ``async query(sql, params)`` and
                ``async end()``
        fs:     filesystem primitives (see backend.utils.filesystem)
    """

    def __init__(
        self,
        workspace_roots: Optional[Sequence[str]] = None,
        driver=None,
        fs=None,
    ):
        self._workspace_roots: List[str] = list(workspace_roots or [])
        self._driver = driver
        self._fs = fs or LocalFileSystem()

        self._config: Optional[WordPressConfig] = None
        self._connection = None
        # Credentials the open connection was made with
        self._connection_credentials = None

        self._config_lock = asyncio.Lock()
        self._connection_lock = asyncio.Lock()
        # One statement at a time on the shared connection
        self._query_lock = asyncio.Lock()

        # Emitted with the new WordPressConfig after each discovery
        self.on_config_changed = Signal()

    # ==================== State ====================

    @property
    def state(self) -> ConnectionState:
        if self._config is None:
            return ConnectionState.UNCONFIGURED
        if self._connection is not None:
            return ConnectionState.CONNECTED
        return ConnectionState.CONFIGURED

    def is_connected(self) -> bool:
        return self._connection is not None

    def get_config(self) -> Optional[WordPressConfig]:
        return self._config

    def get_table_prefix(self) -> Optional[str]:
        return self._config.table_prefix if self._config else None

    def get_wordpress_path(self) -> Optional[str]:
        return self._config.wp_path if self._config else None

    @property
    def workspace_roots(self) -> List[str]:
        return list(self._workspace_roots)

    def set_workspace_roots(self, roots: Sequence[str]):
        """
        Replace workspace roots.

        A change drops the cached configuration, so the next use re-discovers
        wp-config.php. An open connection is closed at that point if the new
        credentials differ.
        """
        roots = [r for r in roots if r]
        if roots == self._workspace_roots:
            return
        self._workspace_roots = roots
        if self._config is not None:
            logger.info(f"Workspace roots changed to {roots}, configuration will be re-discovered")
            self._config = None

    # ==================== Configuration ====================

    async def ensure_configuration(self) -> WordPressConfig:
        """
        Return the cached configuration, discovering it on first use.

        Raises:
            ConfigNotFound: no workspace root, or no wp-config.php on the
                ancestor chain of the first root
        """
        if self._config is not None:
            return self._config

        async with self._config_lock:
            # Another caller may have finished discovery while we waited
            if self._config is None:
                await self._discover()
            return self._config

    async def refresh_configuration(self) -> WordPressConfig:
        """Re-discover wp-config.php, replacing the configuration wholesale."""
        async with self._config_lock:
            await self._discover()

        async with self._connection_lock:
            await self._close_if_stale(self._config)
        return self._config

    async def _discover(self):
        if not self._workspace_roots:
            raise ConfigNotFound("No workspace folder is open")

        start = self._workspace_roots[0]
        config_path = await find_wordpress_config(start, fs=self._fs)
        if not config_path:
            raise ConfigNotFound()

        try:
            config = await load_wordpress_config(config_path, fs=self._fs)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading WordPress config {config_path}: {e}")
            raise ConfigNotFound(f"Could not read {config_path}: {e}") from e

        self._config = config
        logger.info(f"WordPress configuration loaded from {config.config_path} (db={config.db_name})")
        self.on_config_changed.emit(config)

    # ==================== Connection ====================

    async def ensure_connection(self) -> bool:
        """
        Open the database connection if needed.

        Returns:
            True once connected

        Raises:
            ConfigNotFound: configuration could not be discovered
            ConnectionFailed: the driver could not connect
        """
        config = await self.ensure_configuration()
        if self._connection is not None and self._connection_credentials == config.credentials():
            return True

        async with self._connection_lock:
            await self._close_if_stale(config)
            if self._connection is not None:
                return True

            if self._driver is None:
                raise ConnectionFailed("No database driver configured")

            try:
                self._connection = await self._driver.connect(
                    host=config.db_host,
                    user=config.db_user,
                    password=config.db_password,
                    database=config.db_name,
                )
            except Exception as e:
                logger.error(f"Failed to connect to WordPress database: {e}")
                raise ConnectionFailed(f"Failed to connect to WordPress database: {e}") from e

            self._connection_credentials = config.credentials()
            logger.info(f"Connected to WordPress database {config.db_name}@{config.db_host}")
            return True

    async def connect(self) -> bool:
        """Boolean form of ensure_connection() for command-style callers."""
        try:
            return await self.ensure_connection()
        except (ConfigNotFound, ConnectionFailed) as e:
            logger.warning(f"Connect failed: {e}")
            return False

    async def disconnect(self):
        """Close the connection; configuration is retained."""
        async with self._connection_lock:
            await self._close_connection()

    async def _close_if_stale(self, config: WordPressConfig):
        """Close the open connection if it was made with other credentials. Caller holds the connection lock."""
        if self._connection is not None and self._connection_credentials != config.credentials():
            logger.info("Database credentials changed, closing existing connection")
            await self._close_connection()

    async def _close_connection(self):
        # Waits for an in-flight statement before taking the handle away
        async with self._query_lock:
            connection, self._connection = self._connection, None
            self._connection_credentials = None
        if connection is None:
            return
        try:
            await connection.end()
        except Exception as e:
            logger.warning(f"Error while closing database connection: {e}")
        logger.info("Disconnected from WordPress database")

    # ==================== Queries ====================

    async def run_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a parameterized query and return rows as dicts. Not retried.

        Statements on the shared connection run one at a time. If the driver
        reports the connection closed after a failure, the handle is dropped
        so the next call reconnects.

        Raises:
            ConfigNotFound, ConnectionFailed: from ensure_connection()
            QueryFailed: the driver rejected the statement
        """
        await self.ensure_connection()
        async with self._query_lock:
            connection = self._connection
            if connection is None:
                raise ConnectionFailed("Database connection was closed")
            try:
                rows = await connection.query(sql, list(params or []))
            except Exception as e:
                logger.error(f"Database query error: {e}")
                if getattr(connection, "closed", False):
                    logger.warning("Database connection lost, it will be reopened on next use")
                    self._connection = None
                    self._connection_credentials = None
                raise QueryFailed(str(e)) from e
        return list(rows)

    def _table(self, name: str) -> str:
        prefix = self._config.table_prefix
        if not _TABLE_PREFIX_RE.match(prefix):
            raise QueryFailed(f"Invalid table prefix: {prefix!r}")
        return f"{prefix}{name}"

    async def get_option(self, name: str) -> Optional[str]:
        """Raw value of one wp_options row, or None if the row does not exist."""
        await self.ensure_configuration()
        rows = await self.run_query(
            f"SELECT option_value FROM {self._table('options')} WHERE option_name = %s",
            [name],
        )
        if not rows:
            return None
        return rows[0].get("option_value")

    # ==================== Installation accessors ====================

    async def get_wordpress_version(self) -> Optional[str]:
        return await self.get_option("version")

    async def get_active_plugins(self) -> List[str]:
        """
        Active plugin entries from the ``active_plugins`` option.

        The option holds a PHP-serialized array; splitting on ';' is an
        approximation that keeps serialization fragments (``a:2:{i:0`` etc.)
        for real WordPress data.
        """
        raw = await self.get_option("active_plugins")
        if not raw:
            return []
        return [p for p in raw.split(";") if p.strip()]

    async def get_active_theme(self) -> Optional[ThemeInfo]:
        """Active theme from the ``stylesheet`` option, or None if unset or missing on disk."""
        config = await self.ensure_configuration()
        stylesheet = await self.get_option("stylesheet")
        if not stylesheet:
            return None

        theme_path = os.path.join(config.wp_path, "wp-content", "themes", stylesheet)
        try:
            is_dir = await self._fs.is_dir(theme_path)
        except OSError as e:
            logger.warning(f"Error accessing theme directory {theme_path}: {e}")
            return None
        if not is_dir:
            logger.warning(f"Theme directory not found: {theme_path}")
            return None

        template_files = await self._find_theme_template_files(theme_path)
        return ThemeInfo(name=stylesheet, path=theme_path, active=True, template_files=template_files)

    async def _find_theme_template_files(self, theme_path: str) -> List[str]:
        """
        Template files in directory listing order.

        Best effort: any file that cannot be read is skipped without being
        reported, which can hide permission problems on the theme directory.
        """
        try:
            names = await self._fs.list_dir(theme_path)
        except OSError as e:
            logger.warning(f"Error listing theme template files in {theme_path}: {e}")
            return []

        template_files = []
        for name in names:
            if not name.endswith(TEMPLATE_EXTENSION):
                continue
            try:
                content = await self._fs.read_text(os.path.join(theme_path, name))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable template {name}: {e}")
                continue
            if TEMPLATE_HEADER_MARKER in content or name in STANDARD_TEMPLATES:
                template_files.append(name)
        return template_files

    async def get_custom_post_types(self) -> List[str]:
        """
        Custom post type names.

        Tries the Custom Post Type UI option first (string tokens scraped from
        its serialized value, not a real unserialize). Only if that yields
        nothing, falls back to distinct non-builtin post_type values in the
        posts table. The two sources are never merged.
        """
        await self.ensure_configuration()
        serialized = await self.get_option(CPTUI_OPTION)
        if serialized:
            names = _SERIALIZED_STRING_RE.findall(serialized)
            if names:
                return names

        placeholders = ", ".join(["%s"] * len(BUILTIN_POST_TYPES))
        rows = await self.run_query(
            f"SELECT DISTINCT post_type FROM {self._table('posts')} "
            f"WHERE post_type NOT IN ({placeholders}) LIMIT {CUSTOM_POST_TYPE_LIMIT}",
            list(BUILTIN_POST_TYPES),
        )
        return [row["post_type"] for row in rows]
