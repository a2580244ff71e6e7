"""
Debug Logger Middleware for WPContext

Logs request/response details for the WordPress and settings APIs to
debug.log in the settings directory for post-session analysis.
"""

import os
import re
import time
import logging
from logging.handlers import RotatingFileHandler
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Paths we want to capture (prefix match)
_LOGGED_PREFIXES = ("/api/wordpress/", "/api/settings")

# Body size limits to prevent huge logs
_MAX_REQUEST_BODY = 1000
_MAX_RESPONSE_BODY = 2000

# JSON fields whose values never reach the log file
_SECRET_FIELD_RE = re.compile(r'("(?:db_)?password"\s*:\s*)"(?:[^"\\]|\\.)*"', re.IGNORECASE)

# Module-level logger, configured by init_debug_logger()
debug_logger: logging.Logger = logging.getLogger("debug_file")
debug_logger.propagate = False

_log_file_path: str = ""


def redact(text: str) -> str:
    return _SECRET_FIELD_RE.sub(r'\1"***"', text)


def _attach_handler():
    handler = RotatingFileHandler(
        _log_file_path, maxBytes=5 * 1024 * 1024, backupCount=1, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter("[%(asctime)s.%(msecs)03d] %(message)s", datefmt="%H:%M:%S"))
    handler.setLevel(logging.DEBUG)
    debug_logger.handlers.clear()
    debug_logger.addHandler(handler)
    debug_logger.setLevel(logging.DEBUG)


def init_debug_logger(log_dir: str):
    """
    Set up the file-based debug logger. Call once at startup.
    Truncates the log file for a fresh session.
    """
    global _log_file_path
    os.makedirs(log_dir, exist_ok=True)
    _log_file_path = os.path.join(log_dir, "debug.log")

    with open(_log_file_path, "w") as f:
        f.write("")

    _attach_handler()
    debug_logger.info("[STARTUP] Debug logger initialized")


def get_log_file_path() -> str:
    return _log_file_path


def clear_log():
    """Truncate the debug log file."""
    if _log_file_path and os.path.exists(_log_file_path):
        # Close handlers first; Windows keeps the file locked otherwise
        for h in debug_logger.handlers:
            h.close()
        with open(_log_file_path, "w") as f:
            f.write("")
        _attach_handler()
        debug_logger.info("[STARTUP] Debug log cleared")


class DebugLoggerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs request/response for WordPress and settings routes.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not debug_logger.handlers or not any(path.startswith(p) for p in _LOGGED_PREFIXES):
            return await call_next(request)

        method = request.method

        req_body = ""
        if method in ("POST", "PUT", "PATCH", "DELETE"):
            try:
                body_bytes = await request.body()
                req_body = redact(body_bytes.decode("utf-8", errors="replace"))
                if len(req_body) > _MAX_REQUEST_BODY:
                    req_body = req_body[:_MAX_REQUEST_BODY] + "...(truncated)"
            except Exception:
                req_body = "<unreadable>"

        body_str = f"  body={req_body}" if req_body else ""
        debug_logger.info(f"[REQ] >>> {method} {path}{body_str}")

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = (time.monotonic() - start) * 1000
            debug_logger.error(f"[ERROR] {method} {path}  EXCEPTION  {elapsed:.0f}ms  {type(exc).__name__}: {exc}")
            raise

        elapsed = (time.monotonic() - start) * 1000
        status = response.status_code

        body_parts = []
        async for chunk in response.body_iterator:
            body_parts.append(chunk if isinstance(chunk, bytes) else chunk.encode("utf-8"))
        raw = b"".join(body_parts)
        resp_body = redact(raw.decode("utf-8", errors="replace"))
        if len(resp_body) > _MAX_RESPONSE_BODY:
            resp_body = resp_body[:_MAX_RESPONSE_BODY] + "...(truncated)"

        level = "RES" if status < 400 else "ERROR"
        debug_logger.info(f"[{level}] <<< {method} {path}  {status}  {elapsed:.0f}ms  body={resp_body}")

        # The body iterator is consumed; rebuild the response
        return Response(
            content=raw,
            status_code=status,
            headers=dict(response.headers),
            media_type=response.media_type,
        )
