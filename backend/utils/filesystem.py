"""
Async filesystem primitives used by configuration discovery and theme scanning.

Blocking calls run in the event loop's default executor so discovery never
stalls request handling.
"""

import asyncio
import os
from typing import List


class LocalFileSystem:
    """Filesystem access backed by the local disk."""

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def exists(self, path: str) -> bool:
        """True if ``path`` is an existing file. Permission errors count as missing."""
        return await self._run(os.path.isfile, path)

    async def is_dir(self, path: str) -> bool:
        return await self._run(os.path.isdir, path)

    async def read_text(self, path: str) -> str:
        """Read a UTF-8 text file. Raises OSError or UnicodeDecodeError."""
        return await self._run(self._read_text_sync, path)

    async def list_dir(self, path: str) -> List[str]:
        """Entry names in directory listing order. Raises OSError."""
        return await self._run(os.listdir, path)

    @staticmethod
    def _read_text_sync(path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
