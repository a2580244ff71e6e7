"""
Natural-language database query translator.

Supports exactly one phrasing, "find options like <pattern>", which becomes a
LIKE search over the options table. Everything else is rejected with a hint.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from backend.errors import UnrecognizedQuery

logger = logging.getLogger("nl_query")

OPTION_SEARCH_LIMIT = 50

_LIKE_PATTERN_RE = re.compile(r"like\s+(['\"]?)%?([^%'\"]+)%?(['\"]?)", re.IGNORECASE)

UNRECOGNIZED_MESSAGE = 'Could not understand the query. Try "find options like %pattern%"'


@dataclass(frozen=True)
class TranslatedQuery:
    sql: str
    params: List[Any]


def translate_natural_language_query(query: str, table_prefix: str) -> TranslatedQuery:
    """
    Turn a free-text query into SQL.

    Raises:
        UnrecognizedQuery: the query is not an option search, or names no pattern
    """
    lowered = (query or "").lower()
    if "option" in lowered and "like" in lowered:
        match = _LIKE_PATTERN_RE.search(query)
        pattern = match.group(2).strip() if match else ""
        if pattern:
            return TranslatedQuery(
                sql=(
                    "SELECT option_id, option_name, option_value "
                    f"FROM {table_prefix}options "
                    "WHERE option_name LIKE %s "
                    f"LIMIT {OPTION_SEARCH_LIMIT}"
                ),
                params=[f"%{pattern}%"],
            )

    raise UnrecognizedQuery(UNRECOGNIZED_MESSAGE)


async def execute_natural_language_query(manager, query: str) -> List[Dict[str, Any]]:
    """Translate ``query`` against the manager's table prefix and run it."""
    config = await manager.ensure_configuration()
    translated = translate_natural_language_query(query, config.table_prefix)
    logger.info(f"Running option search with pattern {translated.params[0]!r}")
    return await manager.run_query(translated.sql, translated.params)
