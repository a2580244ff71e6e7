"""
Locate wp-config.php by walking up the directory tree.

Only the direct line of ancestors is examined; siblings and children are
never searched.
"""

import logging
import os
from typing import Optional

from backend.utils.filesystem import LocalFileSystem

logger = logging.getLogger("wp_config_finder")

CONFIG_FILENAME = "wp-config.php"


async def find_wordpress_config(start_path: str, fs=None) -> Optional[str]:
    """
    Search for wp-config.php starting at ``start_path`` and moving up through
    parent directories.

    Args:
        start_path: Directory to start from (usually the workspace root)
        fs: Filesystem primitives (defaults to LocalFileSystem)

    Returns:
        Full path of the first wp-config.php found, or None
    """
    fs = fs or LocalFileSystem()
    current = os.path.abspath(start_path)

    while True:
        candidate = os.path.join(current, CONFIG_FILENAME)
        try:
            found = await fs.exists(candidate)
        except OSError as e:
            logger.debug(f"Cannot stat {candidate}: {e}")
            found = False

        if found:
            logger.info(f"Found WordPress config at {candidate}")
            return candidate

        parent = os.path.dirname(current)
        # Filesystem root: dirname() no longer changes the path
        if parent == current:
            break
        current = parent

    logger.debug(f"No {CONFIG_FILENAME} above {start_path}")
    return None
