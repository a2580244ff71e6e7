#!/usr/bin/env python3
"""
WPContext Launcher

Starts the FastAPI backend server for a WordPress workspace.
Open http://localhost:8000/docs in your browser to explore the API.
"""

import os
import sys
import time
import webbrowser
import argparse

# Ensure we're using the right Python path
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, BASE_DIR)


def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Run the FastAPI server."""
    import uvicorn

    print(f"""
    ============================================================
                          WPContext v0.1
             WordPress configuration & database context
    ============================================================
      Workspace: {os.environ.get("WPCONTEXT_WORKSPACE", os.getcwd())}
      Backend:   http://{host}:{port}
      API Docs:  http://{host}:{port}/docs
    ============================================================
    """)

    uvicorn.run(
        "backend.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def run_browser(host: str = "127.0.0.1", port: int = 8000):
    """Run server and open the API docs in a browser."""
    import threading

    def open_browser():
        time.sleep(2)
        webbrowser.open(f"http://{host}:{port}/docs")

    threading.Thread(target=open_browser, daemon=True).start()

    run_server(host, port)


def main():
    parser = argparse.ArgumentParser(description="WPContext Launcher")
    parser.add_argument(
        "--mode",
        choices=["server", "browser"],
        default="server",
        help="Run mode: server (API only), browser (also open API docs)"
    )
    parser.add_argument(
        "--workspace",
        help="Directory to search upward from for wp-config.php (default: current directory)"
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev mode)")

    args = parser.parse_args()

    if args.workspace:
        os.environ["WPCONTEXT_WORKSPACE"] = os.path.abspath(args.workspace)

    if args.mode == "browser":
        run_browser(args.host, args.port)
    else:
        run_server(args.host, args.port, args.reload)


if __name__ == "__main__":
    main()
