"""
Tests for the request/response debug log middleware.
"""

import sys
import os
import shutil
import tempfile
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.middleware import debug_logger as dl


class TestRedact(unittest.TestCase):

    def test_password_fields_masked(self):
        cases = [
            ('{"db_password": "hunter2"}', '{"db_password": "***"}'),
            ('{"password":"a\\"b", "user": "root"}', '{"password":"***", "user": "root"}'),
            ('{"DB_PASSWORD" : "x"}', '{"DB_PASSWORD" : "***"}'),
        ]
        for text, expected in cases:
            with self.subTest(text=text):
                self.assertEqual(dl.redact(text), expected)

    def test_other_fields_untouched(self):
        text = '{"db_user": "root", "password_hint": "pet"}'
        self.assertEqual(dl.redact(text), text)


class TestMiddleware(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        dl.init_debug_logger(self.tmp)

        app = FastAPI()
        app.add_middleware(dl.DebugLoggerMiddleware)

        @app.post("/api/wordpress/echo")
        async def echo(body: dict):
            return {"received": body, "db_password": "secret"}

        @app.get("/api/health")
        async def health():
            return {"status": "ok"}

        self.client = TestClient(app)

    def tearDown(self):
        for handler in dl.debug_logger.handlers:
            handler.close()
        dl.debug_logger.handlers.clear()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _log(self):
        for handler in dl.debug_logger.handlers:
            handler.flush()
        with open(dl.get_log_file_path(), encoding="utf-8") as f:
            return f.read()

    def test_logs_wordpress_routes(self):
        response = self.client.post("/api/wordpress/echo", json={"prompt": "db name", "password": "pw"})

        self.assertEqual(response.json()["db_password"], "secret")
        log = self._log()
        self.assertIn("[REQ] >>> POST /api/wordpress/echo", log)
        self.assertIn("[RES] <<< POST /api/wordpress/echo  200", log)
        self.assertIn("db name", log)
        self.assertNotIn("secret", log)
        self.assertNotIn('"pw"', log)

    def test_other_routes_not_logged(self):
        self.client.get("/api/health")
        self.assertNotIn("/api/health", self._log())

    def test_clear_log(self):
        self.client.post("/api/wordpress/echo", json={})
        dl.clear_log()
        log = self._log()
        self.assertNotIn("/api/wordpress/echo", log)
        self.assertIn("Debug log cleared", log)


if __name__ == "__main__":
    unittest.main()
