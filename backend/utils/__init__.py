"""
Backend utility modules for locating and parsing wp-config.php.
"""

from .filesystem import LocalFileSystem
from .wp_config_finder import find_wordpress_config
from .wp_config_parser import WordPressConfig, parse_wordpress_config, load_wordpress_config

__all__ = [
    "LocalFileSystem",
    "find_wordpress_config",
    "WordPressConfig",
    "parse_wordpress_config",
    "load_wordpress_config",
]
