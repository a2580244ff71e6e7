"""
Extract connection settings from wp-config.php content.

This is a scoped pattern extractor, not a PHP parser. It understands the two
declaration styles WordPress itself writes:

    define( 'DB_NAME', 'value' );     constants
    $table_prefix = 'wp_';            the table prefix variable

Anything else (concatenation, constants referencing constants, heredocs,
values containing the other quote character) is not recognized.
"""

import logging
import os
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from backend.utils.filesystem import LocalFileSystem

logger = logging.getLogger("wp_config_parser")

DEFAULT_DB_HOST = "localhost"
DEFAULT_TABLE_PREFIX = "wp_"

# Fields a usable configuration needs; absence is logged, not fatal
REQUIRED_KEYS = ("DB_NAME", "DB_USER")

_TABLE_PREFIX_RE = re.compile(r"\$table_prefix\s*=\s*['\"]([^'\"]+)['\"]", re.IGNORECASE)


@dataclass(frozen=True)
class WordPressConfig:
    """Connection parameters recovered from one wp-config.php."""
    config_path: str
    wp_path: str
    db_host: str
    db_name: str
    db_user: str
    db_password: str
    table_prefix: str = DEFAULT_TABLE_PREFIX
    missing_fields: Tuple[str, ...] = ()

    def credentials(self) -> Tuple[str, str, str, str]:
        """Values that identify a database connection."""
        return (self.db_host, self.db_user, self.db_password, self.db_name)

    def to_dict(self, include_password: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        data["missing_fields"] = list(self.missing_fields)
        if not include_password:
            data.pop("db_password")
        return data


def _define_pattern(key: str) -> "re.Pattern":
    # Only the define keyword is case-insensitive; the constant name is exact
    return re.compile(
        r"(?i:define)\s*\(\s*['\"]" + re.escape(key) + r"['\"]\s*,\s*['\"]([^'\"]+)['\"]\s*\)"
    )


def extract_config_value(content: str, key: str) -> str:
    """Value of ``define('KEY', 'VALUE')``; first match wins, '' if absent."""
    match = _define_pattern(key).search(content)
    return match.group(1) if match else ""


def extract_table_prefix(content: str) -> str:
    """Value of the ``$table_prefix`` assignment, defaulting to wp_."""
    match = _TABLE_PREFIX_RE.search(content)
    return match.group(1) if match else DEFAULT_TABLE_PREFIX


def parse_wordpress_config(content: str, config_path: str) -> WordPressConfig:
    """
    Build a WordPressConfig from file content. Never fails; unmatched fields
    take their documented defaults and are listed in ``missing_fields``.

    Args:
        content: Text of wp-config.php
        config_path: Absolute path of the file (its directory is the WordPress root)
    """
    values = {key: extract_config_value(content, key)
              for key in ("DB_NAME", "DB_USER", "DB_PASSWORD", "DB_HOST")}
    missing = tuple(key for key in REQUIRED_KEYS if not values[key])
    if missing:
        logger.warning(f"{config_path}: no value for {', '.join(missing)}")

    return WordPressConfig(
        config_path=config_path,
        wp_path=os.path.dirname(config_path),
        db_host=values["DB_HOST"] or DEFAULT_DB_HOST,
        db_name=values["DB_NAME"],
        db_user=values["DB_USER"],
        db_password=values["DB_PASSWORD"],
        table_prefix=extract_table_prefix(content),
        missing_fields=missing,
    )


async def load_wordpress_config(config_path: str, fs=None) -> WordPressConfig:
    """Read and parse wp-config.php. Raises OSError if the file cannot be read."""
    fs = fs or LocalFileSystem()
    content = await fs.read_text(config_path)
    return parse_wordpress_config(content, config_path)
