"""
WordPress Routes - configuration, database query, chat and completion endpoints.

Every endpoint answers with a ``success`` flag; WordPress errors are reported
as ``{"success": False, "error": ...}`` rather than HTTP failures.
"""

import logging
from fastapi import APIRouter, Request
from pydantic import BaseModel

from backend.errors import ConfigNotFound, ConnectionFailed, WordPressError
from backend.nl_query import execute_natural_language_query
from backend.output_formatter import format_configuration, format_query_results
from backend.query_router import FOLLOWUP_PROMPTS

router = APIRouter()
logger = logging.getLogger("routes.wordpress")


class ChatRequest(BaseModel):
    """A free-text question for the chat participant."""
    prompt: str


class AnswerRequest(BaseModel):
    question: str


class DatabaseQueryRequest(BaseModel):
    """Natural-language database query, e.g. "find options like %mss%"."""
    query: str


class CompletionRequest(BaseModel):
    """Text of the current line up to the cursor."""
    line_prefix: str


@router.get("/status")
async def get_status(request: Request):
    """Configuration/connection readiness."""
    manager = request.app.state.wordpress
    config = manager.get_config()
    return {
        "success": True,
        "state": manager.state.value,
        "config_path": config.config_path if config else None,
        "workspace_roots": manager.workspace_roots,
    }


@router.post("/connect")
async def connect(request: Request):
    """Locate wp-config.php (fresh discovery) and report where it was found."""
    manager = request.app.state.wordpress
    try:
        config = await manager.refresh_configuration()
    except ConfigNotFound as e:
        logger.warning(f"Connect: {e}")
        return {"success": False, "error": "Could not find WordPress configuration (wp-config.php)."}

    return {
        "success": True,
        "config_path": config.config_path,
        "message": f"WordPress config found at: {config.config_path}",
    }


@router.post("/disconnect")
async def disconnect(request: Request):
    manager = request.app.state.wordpress
    await manager.disconnect()
    return {"success": True, "state": manager.state.value}


@router.get("/config")
async def show_config(request: Request):
    """Configuration details without the password, plus a plain-text rendering."""
    manager = request.app.state.wordpress
    try:
        config = await manager.ensure_configuration()
    except ConfigNotFound as e:
        logger.warning(f"Show config: {e}")
        return {"success": False, "error": "Could not find WordPress configuration (wp-config.php)."}

    return {
        "success": True,
        "config": config.to_dict(),
        "output": format_configuration(config),
    }


@router.post("/query")
async def query_database(request: Request, body: DatabaseQueryRequest):
    """Run a natural-language option search against the WordPress database."""
    manager = request.app.state.wordpress
    try:
        await manager.ensure_connection()
    except ConfigNotFound:
        return {"success": False, "error": "Could not find WordPress configuration (wp-config.php)."}
    except ConnectionFailed as e:
        logger.error(f"Query command could not connect: {e}")
        return {"success": False, "error": str(e)}

    try:
        rows = await execute_natural_language_query(manager, body.query)
    except WordPressError as e:
        return {"success": False, "error": f"Query error: {e}"}

    if not rows:
        return {"success": True, "count": 0, "rows": [], "message": "No results found for your query."}

    return {
        "success": True,
        "count": len(rows),
        "rows": rows,
        "output": format_query_results(body.query, rows),
    }


@router.post("/chat")
async def chat(request: Request, body: ChatRequest):
    """Answer a WordPress question; the message doubles as the markdown reply."""
    query_router = request.app.state.query_router
    response = await query_router.ask(body.prompt)
    result = response.to_dict()
    result["success"] = response.error is None
    result["markdown"] = response.message
    return result


@router.get("/followups")
async def get_followups():
    return {"success": True, "followups": list(FOLLOWUP_PROMPTS)}


@router.post("/answer")
async def answer_config_question(request: Request, body: AnswerRequest):
    """Legacy single-string answer about wp-config.php values."""
    query_router = request.app.state.query_router
    answer = await query_router.answer_config_question(body.question)
    return {"success": True, "answer": answer}


@router.post("/completions")
async def get_completions(request: Request, body: CompletionRequest):
    provider = request.app.state.completions
    items = await provider.provide(body.line_prefix)
    return {"success": True, "items": [item.to_dict() for item in items]}
