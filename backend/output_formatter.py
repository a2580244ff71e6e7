"""
Plain-text renderings for output-panel style displays.
"""

from typing import Any, Dict, List

RULE = "-" * 40


def format_configuration(config) -> str:
    """Configuration details; the password is never included."""
    lines = [
        "WordPress Configuration Details:",
        RULE,
        f"Configuration File: {config.config_path}",
        f"WordPress Root: {config.wp_path}",
        "",
        "Database Details:",
        f"Database Name: {config.db_name}",
        f"Database User: {config.db_user}",
        f"Database Host: {config.db_host}",
        f"Table Prefix: {config.table_prefix}",
    ]
    return "\n".join(lines)


def format_query_results(query: str, rows: List[Dict[str, Any]]) -> str:
    lines = [f"Query: {query}", "Results:", RULE]
    for index, row in enumerate(rows, start=1):
        lines.append(f"Result #{index}:")
        lines.extend(f"{key}: {value}" for key, value in row.items())
        lines.append(RULE)
    return "\n".join(lines)
