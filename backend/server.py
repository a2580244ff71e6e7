"""
WPContext Backend Server

FastAPI server providing:
- WordPress configuration discovery and database queries
- Question answering about the installation (chat)
- WordPress function completions
- Settings management
"""

import os
import sys
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Add parent directory for imports
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, BASE_DIR)

from settings.settings_manager import SettingsManager
from backend.db_driver import MySQLDriver
from backend.wordpress_manager import WordPressManager
from backend.query_router import QueryRouter
from backend.completions import CompletionProvider
from backend.routes import wordpress, settings
from backend.middleware.debug_logger import init_debug_logger, DebugLoggerMiddleware, clear_log

# Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("WPContext")

SETTINGS_DIR_ENV_VAR = "WPCONTEXT_SETTINGS_DIR"

# Global instances
settings_manager: Optional[SettingsManager] = None
wordpress_manager: Optional[WordPressManager] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    global settings_manager, wordpress_manager

    logger.info("Starting WPContext Backend...")

    settings_manager = SettingsManager(settings_dir=os.environ.get(SETTINGS_DIR_ENV_VAR))
    logging.getLogger().setLevel(settings_manager.get("logging.level", "INFO"))

    if settings_manager.get("logging.debug_log", True):
        init_debug_logger(str(settings_manager.settings_dir))

    driver = MySQLDriver(
        port=settings_manager.get("database.port", 3306),
        connect_timeout=settings_manager.get("database.connect_timeout", 10),
        charset=settings_manager.get("database.charset", "utf8mb4"),
    )
    wordpress_manager = WordPressManager(
        workspace_roots=settings_manager.workspace_roots(),
        driver=driver,
    )
    logger.info(f"Workspace roots: {wordpress_manager.workspace_roots}")

    def _on_settings_changed(key, value):
        if key in ("workspace.roots", "workspace", "*"):
            wordpress_manager.set_workspace_roots(settings_manager.workspace_roots())
            logger.info(f"Workspace roots changed: {wordpress_manager.workspace_roots}")

    settings_manager.on_settings_changed.connect(_on_settings_changed)

    # Store in app state for route access
    app.state.settings = settings_manager
    app.state.wordpress = wordpress_manager
    app.state.query_router = QueryRouter(wordpress_manager)
    app.state.completions = CompletionProvider(wordpress_manager)

    logger.info("WPContext Backend ready")

    yield

    logger.info("Shutting down...")
    await wordpress_manager.disconnect()
    logger.info("Shutdown complete")


# Create app
app = FastAPI(
    title="WPContext",
    description="WordPress installation context: configuration, database and question answering",
    version="0.1.0",
    lifespan=lifespan
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(DebugLoggerMiddleware)

# Include routers
app.include_router(wordpress.router, prefix="/api/wordpress", tags=["WordPress"])
app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])


@app.delete("/api/debug/log", tags=["Debug"])
async def clear_debug_log():
    """Clears the debug log file."""
    clear_log()
    return {"ok": True}


@app.get("/api/health", tags=["System"])
async def health():
    return {"status": "ok"}
