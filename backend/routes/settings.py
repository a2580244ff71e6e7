"""
Settings Routes - API endpoints for application settings.
"""

from typing import Any, Optional
from fastapi import APIRouter, Request
from pydantic import BaseModel
import logging

router = APIRouter()
logger = logging.getLogger("routes.settings")


class SettingsUpdateRequest(BaseModel):
    """Request body for updating settings."""
    key: str
    value: Any


class SettingsResetRequest(BaseModel):
    section: Optional[str] = None


@router.get("")
async def get_all_settings(request: Request):
    """Get all application settings."""
    settings = request.app.state.settings
    return {"success": True, "settings": settings.get_all()}


@router.get("/{section}")
async def get_settings_section(request: Request, section: str):
    """Get a specific settings section."""
    settings = request.app.state.settings
    values = settings.get_section(section)
    if values is None:
        return {"success": False, "error": f"Section '{section}' not found"}
    return {"success": True, "section": section, "settings": values}


@router.post("/update")
async def update_setting(request: Request, body: SettingsUpdateRequest):
    """Update a single setting by dot-notation key."""
    settings = request.app.state.settings
    old_value = settings.get(body.key)
    settings.set(body.key, body.value)
    logger.info(f"Setting updated: {body.key}")
    return {"success": True, "key": body.key, "old_value": old_value, "new_value": body.value}


@router.post("/reset")
async def reset_settings(request: Request, body: SettingsResetRequest):
    settings = request.app.state.settings
    settings.reset_to_defaults(body.section)
    logger.info(f"Settings reset: {body.section or 'all'}")
    return {"success": True, "settings": settings.get_all()}
