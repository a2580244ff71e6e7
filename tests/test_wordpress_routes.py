"""
HTTP tests for the WordPress and settings routes.

Mounts the routers on a bare FastAPI app with app.state populated by hand,
backed by a temporary WordPress tree and a fake database driver.
"""

import sys
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.completions import CompletionProvider
from backend.query_router import FOLLOWUP_PROMPTS, QueryRouter
from backend.routes import settings as settings_routes
from backend.routes import wordpress as wordpress_routes
from backend.wordpress_manager import WordPressManager
from settings.settings_manager import SettingsManager


CONFIG_CONTENT = """<?php
define( 'DB_NAME', 'shop' );
define( 'DB_USER', 'root' );
define( 'DB_PASSWORD', 'secret' );
define( 'DB_HOST', 'db.internal' );
$table_prefix = 'wp_';
"""


class FakeConnection:
    def __init__(self, rows=None, fail=False):
        self.rows = rows or []
        self.fail = fail
        self.queries = []

    async def query(self, sql, params):
        self.queries.append((sql, params))
        if self.fail:
            raise RuntimeError("Lost connection to MySQL server during query")
        if "option_name LIKE" in sql:
            return list(self.rows)
        return []

    async def end(self):
        pass


class FakeDriver:
    def __init__(self, connection=None, error=None):
        self.connection = connection or FakeConnection()
        self.error = error

    async def connect(self, host, user, password, database):
        if self.error:
            raise self.error
        return self.connection


class RouteTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.site = os.path.join(self.tmp, "site")
        self.workspace = os.path.join(self.site, "wp-content")
        os.makedirs(self.workspace)
        with open(os.path.join(self.site, "wp-config.php"), "w", encoding="utf-8") as f:
            f.write(CONFIG_CONTENT)
        self.settings_dir = os.path.join(self.tmp, "settings")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def make_client(self, driver=None, roots=None):
        manager = WordPressManager(
            workspace_roots=[self.workspace] if roots is None else roots,
            driver=driver or FakeDriver(),
        )
        app = FastAPI()
        app.include_router(wordpress_routes.router, prefix="/api/wordpress")
        app.include_router(settings_routes.router, prefix="/api/settings")
        app.state.wordpress = manager
        app.state.query_router = QueryRouter(manager)
        app.state.completions = CompletionProvider(manager)
        app.state.settings = SettingsManager(settings_dir=self.settings_dir)
        return TestClient(app)


class TestConfigRoutes(RouteTestCase):

    def test_status_before_discovery(self):
        with self.make_client() as client:
            data = client.get("/api/wordpress/status").json()
        self.assertEqual(data["state"], "unconfigured")
        self.assertIsNone(data["config_path"])
        self.assertEqual(data["workspace_roots"], [self.workspace])

    def test_connect_reports_config_location(self):
        config_path = os.path.join(self.site, "wp-config.php")
        with self.make_client() as client:
            data = client.post("/api/wordpress/connect").json()
            status = client.get("/api/wordpress/status").json()

        self.assertTrue(data["success"])
        self.assertEqual(data["message"], f"WordPress config found at: {config_path}")
        self.assertEqual(status["state"], "configured")

    def test_connect_without_config(self):
        empty = os.path.join(self.tmp, "empty")
        os.makedirs(empty)
        with self.make_client(roots=[empty]) as client:
            data = client.post("/api/wordpress/connect").json()
        if data["success"]:
            self.skipTest("a wp-config.php exists above the temp directory")
        self.assertEqual(data["error"], "Could not find WordPress configuration (wp-config.php).")

    def test_connect_without_workspace(self):
        with self.make_client(roots=[]) as client:
            data = client.post("/api/wordpress/connect").json()
        self.assertFalse(data["success"])

    def test_config_hides_password(self):
        with self.make_client() as client:
            data = client.get("/api/wordpress/config").json()

        self.assertTrue(data["success"])
        self.assertEqual(data["config"]["db_host"], "db.internal")
        self.assertNotIn("db_password", data["config"])
        self.assertNotIn("secret", data["output"])
        self.assertIn("Database Name: shop", data["output"])

    def test_disconnect(self):
        with self.make_client() as client:
            client.post("/api/wordpress/query", json={"query": "options like home"})
            data = client.post("/api/wordpress/disconnect").json()
        self.assertEqual(data["state"], "configured")


class TestQueryRoute(RouteTestCase):

    def test_rows_returned(self):
        rows = [{"option_id": 1, "option_name": "siteurl", "option_value": "http://shop.test"}]
        driver = FakeDriver(FakeConnection(rows=rows))

        with self.make_client(driver) as client:
            data = client.post("/api/wordpress/query", json={"query": "find options like url"}).json()

        self.assertTrue(data["success"])
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["rows"], rows)
        self.assertIn("Result #1:", data["output"])
        self.assertEqual(driver.connection.queries[0][1], ["%url%"])

    def test_no_rows(self):
        with self.make_client() as client:
            data = client.post("/api/wordpress/query", json={"query": "find options like zzz"}).json()
        self.assertTrue(data["success"])
        self.assertEqual(data["message"], "No results found for your query.")

    def test_unrecognized_query(self):
        with self.make_client() as client:
            data = client.post("/api/wordpress/query", json={"query": "show me themes"}).json()
        self.assertFalse(data["success"])
        self.assertEqual(
            data["error"],
            'Query error: Could not understand the query. Try "find options like %pattern%"',
        )

    def test_connection_failure(self):
        driver = FakeDriver(error=ConnectionRefusedError("Connection refused"))
        with self.make_client(driver) as client:
            data = client.post("/api/wordpress/query", json={"query": "options like a"}).json()
        self.assertFalse(data["success"])
        self.assertEqual(data["error"], "Failed to connect to WordPress database: Connection refused")

    def test_driver_error(self):
        driver = FakeDriver(FakeConnection(fail=True))
        with self.make_client(driver) as client:
            data = client.post("/api/wordpress/query", json={"query": "options like a"}).json()
        self.assertEqual(data["error"], "Query error: Lost connection to MySQL server during query")

    def test_missing_body_field(self):
        with self.make_client() as client:
            response = client.post("/api/wordpress/query", json={})
        self.assertEqual(response.status_code, 422)


class TestChatRoutes(RouteTestCase):

    def test_chat_database_name(self):
        with self.make_client() as client:
            data = client.post("/api/wordpress/chat", json={"prompt": "What is the database name?"}).json()

        self.assertTrue(data["success"])
        self.assertEqual(data["type"], "database_info")
        self.assertEqual(data["markdown"], "The database name in your wp-config.php is: shop")
        self.assertEqual(data["data"]["db_host"], "db.internal")

    def test_chat_error_is_unsuccessful(self):
        driver = FakeDriver(error=ConnectionRefusedError("Connection refused"))
        with self.make_client(driver) as client:
            data = client.post("/api/wordpress/chat", json={"prompt": "list plugins"}).json()

        self.assertFalse(data["success"])
        self.assertEqual(data["type"], "plugin_info")
        self.assertTrue(data["message"].startswith("Error retrieving WordPress data:"))

    def test_followups(self):
        with self.make_client() as client:
            data = client.get("/api/wordpress/followups").json()
        self.assertEqual(data["followups"], FOLLOWUP_PROMPTS)

    def test_legacy_answer(self):
        with self.make_client() as client:
            data = client.post("/api/wordpress/answer", json={"question": "db host"}).json()
        self.assertEqual(data["answer"], "The database host in your wp-config.php is: db.internal")

    def test_completions(self):
        with self.make_client() as client:
            data = client.post("/api/wordpress/completions", json={"line_prefix": "add_"}).json()
        self.assertEqual(data["items"][0]["label"], "add_action")
        self.assertEqual(data["items"][0]["kind"], "function")


class TestSettingsRoutes(RouteTestCase):

    def test_get_all(self):
        with self.make_client() as client:
            data = client.get("/api/settings").json()
        self.assertEqual(data["settings"]["database"]["port"], 3306)

    def test_get_section(self):
        with self.make_client() as client:
            found = client.get("/api/settings/logging").json()
            missing = client.get("/api/settings/nope").json()
        self.assertEqual(found["settings"]["level"], "INFO")
        self.assertFalse(missing["success"])

    def test_update_and_reset(self):
        with self.make_client() as client:
            updated = client.post("/api/settings/update", json={"key": "database.port", "value": 3307}).json()
            self.assertEqual(updated["old_value"], 3306)
            self.assertEqual(client.get("/api/settings/database").json()["settings"]["port"], 3307)

            reset = client.post("/api/settings/reset", json={"section": "database"}).json()
        self.assertEqual(reset["settings"]["database"]["port"], 3306)


if __name__ == "__main__":
    unittest.main()


class TestServerApp(RouteTestCase):
    """The real application, wired up by its lifespan from environment settings."""

    def test_lifespan_wires_workspace(self):
        from backend import server
        from backend.middleware import debug_logger as dl

        env = {
            server.SETTINGS_DIR_ENV_VAR: self.settings_dir,
            "WPCONTEXT_WORKSPACE": self.workspace,
        }
        try:
            with patch.dict(os.environ, env):
                with TestClient(server.app) as client:
                    self.assertEqual(client.get("/api/health").json(), {"status": "ok"})
                    status = client.get("/api/wordpress/status").json()
                    answer = client.post("/api/wordpress/answer", json={"question": "db name"}).json()
                    settings = client.get("/api/settings/workspace").json()
        finally:
            for handler in dl.debug_logger.handlers:
                handler.close()
            dl.debug_logger.handlers.clear()

        self.assertEqual(status["workspace_roots"], [self.workspace])
        self.assertEqual(answer["answer"], "The database name in your wp-config.php is: shop")
        self.assertEqual(settings["settings"]["roots"], [])
        self.assertTrue(os.path.exists(os.path.join(self.settings_dir, "debug.log")))

    def test_workspace_update_switches_site(self):
        from backend import server
        from backend.middleware import debug_logger as dl

        other_site = os.path.join(self.tmp, "other")
        os.makedirs(other_site)
        with open(os.path.join(other_site, "wp-config.php"), "w", encoding="utf-8") as f:
            f.write(CONFIG_CONTENT.replace("'shop'", "'beta'"))

        env = {
            server.SETTINGS_DIR_ENV_VAR: self.settings_dir,
            "WPCONTEXT_WORKSPACE": self.workspace,
        }
        try:
            with patch.dict(os.environ, env):
                with TestClient(server.app) as client:
                    before = client.post("/api/wordpress/answer", json={"question": "db name"}).json()
                    update = client.post(
                        "/api/settings/update", json={"key": "workspace.roots", "value": [other_site]}
                    ).json()
                    status = client.get("/api/wordpress/status").json()
                    after = client.post("/api/wordpress/answer", json={"question": "db name"}).json()
        finally:
            for handler in dl.debug_logger.handlers:
                handler.close()
            dl.debug_logger.handlers.clear()

        self.assertEqual(before["answer"], "The database name in your wp-config.php is: shop")
        self.assertTrue(update["success"])
        self.assertEqual(status["workspace_roots"], [other_site])
        self.assertEqual(after["answer"], "The database name in your wp-config.php is: beta")
