"""
Query Router - answers free-text questions about a WordPress installation.

Classification is a pure, first-match-wins scan over ordered keyword rule
tables; each intent has one handler that pulls from the WordPressManager and
renders a QueryResponse. Every question gets a response, never an exception.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from backend.errors import ConfigNotFound, WordPressError

logger = logging.getLogger("query_router")


class Intent(str, Enum):
    DATABASE_INFO = "database_info"
    THEME_INFO = "theme_info"
    PLUGIN_INFO = "plugin_info"
    CUSTOM_POST_TYPES = "custom_post_types"
    GENERAL_INFO = "general_info"


@dataclass
class QueryResponse:
    """
    Typed answer for one question.

    ``data`` is None/empty only when the lookup legitimately found nothing;
    ``error`` is set instead when a lookup failed.
    """
    type: Intent
    data: Any
    message: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "data": self.data,
            "message": self.message,
            "error": self.error,
        }


# Ordered (intent, keywords) rules; anything unmatched is GENERAL_INFO
INTENT_RULES: List[Tuple[Intent, Tuple[str, ...]]] = [
    (Intent.DATABASE_INFO, ("database", "db", "username", "wp-config")),
    (Intent.THEME_INFO, ("theme",)),
    (Intent.PLUGIN_INFO, ("plugin",)),
    (Intent.CUSTOM_POST_TYPES, ("post type", "cpt")),
]

# Secondary pass inside database_info: (keywords, config field, label)
DATABASE_FIELD_RULES: List[Tuple[Tuple[str, ...], str, str]] = [
    (("username", "user", "db_user"), "db_user", "database username"),
    (("name", "db_name"), "db_name", "database name"),
    (("host", "db_host"), "db_host", "database host"),
    (("prefix", "table"), "table_prefix", "table prefix"),
]

THEME_TEMPLATE_KEYWORDS = ("template", "file")

# Rules for the legacy single-string answer command
LEGACY_ANSWER_RULES: List[Tuple[Tuple[str, ...], Callable]] = [
    (("username", "user", "db_user"),
     lambda c: f"The database username in your wp-config.php is: {c.db_user}"),
    (("database name", "db name", "db_name"),
     lambda c: f"The database name in your wp-config.php is: {c.db_name}"),
    (("host", "db_host"),
     lambda c: f"The database host in your wp-config.php is: {c.db_host}"),
    (("password", "db_password"),
     lambda c: f"The database password is defined in your wp-config.php at: {c.config_path}"),
    (("prefix", "table prefix"),
     lambda c: f"The table prefix in your wp-config.php is: {c.table_prefix}"),
    (("config", "wp-config", "configuration"),
     lambda c: (
         f"WordPress configuration was found at: {c.config_path}\n\n"
         f"It contains the following settings:\n"
         f"- Database name: {c.db_name}\n"
         f"- Database user: {c.db_user}\n"
         f"- Database host: {c.db_host}\n"
         f"- Table prefix: {c.table_prefix}"
     )),
]

FOLLOWUP_PROMPTS = [
    "Show database information",
    "What is the database username?",
    "What is the database name?",
    "What theme is active?",
    "List active plugins",
]

CONFIG_NOT_FOUND_MESSAGE = (
    "WordPress configuration not found. Please open a folder containing WordPress installation."
)
LEGACY_CONFIG_NOT_FOUND_MESSAGE = (
    "Sorry, I couldn't find a WordPress configuration file. Make sure you have a "
    "wp-config.php file in your project or its parent directories."
)


def _matches(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(kw in text for kw in keywords)


def classify_question(question: str) -> Intent:
    """Map any question (including '') to exactly one intent."""
    text = (question or "").lower()
    for intent, keywords in INTENT_RULES:
        if _matches(text, keywords):
            return intent
    return Intent.GENERAL_INFO


def _numbered(items: List[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


class QueryRouter:
    """Classifies questions and dispatches them to per-intent handlers."""

    def __init__(self, manager):
        self.manager = manager
        self._handlers = {
            Intent.DATABASE_INFO: self._handle_database,
            Intent.THEME_INFO: self._handle_theme,
            Intent.PLUGIN_INFO: self._handle_plugins,
            Intent.CUSTOM_POST_TYPES: self._handle_post_types,
            Intent.GENERAL_INFO: self._handle_general,
        }

    def classify(self, question: str) -> Intent:
        return classify_question(question)

    async def ask(self, question: str) -> QueryResponse:
        """Classify and answer one question. Failures become an error response."""
        intent = self.classify(question)
        logger.info(f"Question classified as {intent.value}")
        try:
            await self.manager.ensure_configuration()
            return await self.dispatch(intent, question)
        except ConfigNotFound as e:
            logger.warning(f"No WordPress configuration: {e}")
            return QueryResponse(type=intent, data=None, message=CONFIG_NOT_FOUND_MESSAGE, error=str(e))
        except WordPressError as e:
            logger.error(f"Error answering {intent.value} question: {e}")
            return QueryResponse(
                type=intent,
                data=None,
                message=f"Error retrieving WordPress data: {e}",
                error=str(e),
            )

    async def dispatch(self, intent: Intent, question: str) -> QueryResponse:
        handler = self._handlers[intent]
        return await handler((question or "").lower())

    # ==================== Handlers ====================

    async def _handle_database(self, query: str) -> QueryResponse:
        config = await self.manager.ensure_configuration()

        for keywords, field_name, label in DATABASE_FIELD_RULES:
            if _matches(query, keywords):
                message = f"The {label} in your wp-config.php is: {getattr(config, field_name)}"
                break
        else:
            message = (
                "WordPress database configuration:\n\n"
                f"- Database name: {config.db_name}\n"
                f"- Database user: {config.db_user}\n"
                f"- Database host: {config.db_host}\n"
                f"- Table prefix: {config.table_prefix}\n\n"
                f"Configuration file: {config.config_path}"
            )

        return QueryResponse(
            type=Intent.DATABASE_INFO,
            data={
                "db_name": config.db_name,
                "db_user": config.db_user,
                "db_host": config.db_host,
                "table_prefix": config.table_prefix,
                "config_path": config.config_path,
            },
            message=message,
        )

    async def _handle_theme(self, query: str) -> QueryResponse:
        theme = await self.manager.get_active_theme()
        if theme is None:
            return QueryResponse(
                type=Intent.THEME_INFO,
                data=None,
                message=(
                    "Could not retrieve theme information. The WordPress database may not be "
                    "accessible or no theme is active."
                ),
            )

        if _matches(query, THEME_TEMPLATE_KEYWORDS):
            listing = "\n".join(f"- {name}" for name in theme.template_files)
            message = f'Template files in the active theme "{theme.name}":\n\n{listing}'
        else:
            message = (
                f"Active WordPress theme: {theme.name}\n"
                f"Theme path: {theme.path}\n"
                f"Number of template files: {len(theme.template_files)}"
            )
        return QueryResponse(type=Intent.THEME_INFO, data=theme.to_dict(), message=message)

    async def _handle_plugins(self, _query: str) -> QueryResponse:
        plugins = await self.manager.get_active_plugins()
        if not plugins:
            return QueryResponse(
                type=Intent.PLUGIN_INFO,
                data=[],
                message="No active plugins were found or the WordPress database is not accessible.",
            )
        return QueryResponse(
            type=Intent.PLUGIN_INFO,
            data=plugins,
            message=f"Active WordPress plugins ({len(plugins)}):\n\n{_numbered(plugins)}",
        )

    async def _handle_post_types(self, _query: str) -> QueryResponse:
        post_types = await self.manager.get_custom_post_types()
        if not post_types:
            return QueryResponse(
                type=Intent.CUSTOM_POST_TYPES,
                data=[],
                message="No custom post types were found in this WordPress installation.",
            )
        return QueryResponse(
            type=Intent.CUSTOM_POST_TYPES,
            data=post_types,
            message=(
                f"Custom post types in this WordPress installation ({len(post_types)}):\n\n"
                f"{_numbered(post_types)}"
            ),
        )

    async def _handle_general(self, _query: str) -> QueryResponse:
        config = await self.manager.ensure_configuration()
        try:
            version = await self.manager.get_wordpress_version()
        except WordPressError as e:
            # Version is informational; the rest of the summary comes from wp-config.php
            logger.warning(f"Could not retrieve WordPress version: {e}")
            version = None

        message = (
            "WordPress Information:\n\n"
            f"- WordPress Version: {version or 'Unknown'}\n"
            f"- WordPress Path: {config.wp_path}\n"
            f"- Configuration File: {config.config_path}\n"
            f"- Database Name: {config.db_name}\n"
            f"- Database User: {config.db_user}\n\n"
            "You can ask me about database details, active theme, plugins, or custom post types."
        )
        return QueryResponse(
            type=Intent.GENERAL_INFO,
            data={"version": version, "path": config.wp_path, "config_path": config.config_path},
            message=message,
        )

    # ==================== Legacy command ====================

    async def answer_config_question(self, question: str) -> str:
        """Single-string answer about wp-config.php values; never echoes the password."""
        try:
            config = await self.manager.ensure_configuration()
        except ConfigNotFound as e:
            logger.warning(f"No WordPress configuration: {e}")
            return LEGACY_CONFIG_NOT_FOUND_MESSAGE

        text = (question or "").lower()
        for keywords, render in LEGACY_ANSWER_RULES:
            if _matches(text, keywords):
                return render(config)

        return (
            f"I found your WordPress configuration at {config.config_path}, but I'm not sure "
            "what specific information you're looking for. Try asking about database name, "
            "username, host, or table prefix."
        )
