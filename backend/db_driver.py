"""
MySQL transport for the WordPress database.

Thin async wrapper over aiomysql exposing the three operations the rest of
the backend relies on: connect, query, end. Tests substitute any object with
the same shape.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiomysql

logger = logging.getLogger("db_driver")


class MySQLConnection:
    """
    A single open aiomysql connection returning rows as dicts.

    aiomysql reads replies off one stream, so statements are serialized here;
    concurrent callers queue instead of interleaving reads.
    """

    def __init__(self, conn: "aiomysql.Connection"):
        self._conn = conn
        self._lock = asyncio.Lock()

    @property
    def closed(self) -> bool:
        """True once aiomysql has dropped the underlying socket."""
        return self._conn.closed

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a parameterized statement (``%s`` placeholders) and fetch all rows."""
        async with self._lock:
            async with self._conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(sql, tuple(params) if params else None)
                rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def end(self):
        """Close the connection, waiting for the server acknowledgement."""
        async with self._lock:
            await self._conn.ensure_closed()


class MySQLDriver:
    """Opens MySQL connections using settings-provided port/timeout/charset."""

    def __init__(self, port: int = 3306, connect_timeout: int = 10, charset: str = "utf8mb4"):
        self.port = port
        self.connect_timeout = connect_timeout
        self.charset = charset

    async def connect(self, host: str, user: str, password: str, database: str) -> MySQLConnection:
        host, port = self._split_host(host)
        conn = await aiomysql.connect(
            host=host,
            port=port,
            user=user,
            password=password,
            db=database,
            charset=self.charset,
            connect_timeout=self.connect_timeout,
            autocommit=True,
        )
        logger.debug(f"Opened MySQL connection to {host}:{port}/{database}")
        return MySQLConnection(conn)

    def _split_host(self, host: str):
        """WordPress allows DB_HOST as ``host:port``."""
        if host.count(":") == 1:
            name, _, port = host.partition(":")
            if port.isdigit():
                return name or "localhost", int(port)
        return host, self.port
