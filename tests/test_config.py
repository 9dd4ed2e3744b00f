import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from datasync.application.bootstrap import bootstrap_app
from datasync.application.container import AppConfig, create_container
from datasync.infrastructure import CachingDataService
from datasync.infrastructure.metrics import DEFAULT_LOGGER_NAME
from datasync.infrastructure.rest import RestDataService
from datasync.infrastructure.sqlite import SQLiteDataService
from datasync.main import load_app_config
from datasync.network import AuthInterceptor, LoggingInterceptor, MetricsInterceptor


class LoadAppConfigTests(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_app_config()

        self.assertEqual(config, AppConfig())

    def test_reads_environment(self):
        env = {
            "DATASYNC_DB_PATH": " /tmp/x.db ",
            "DATASYNC_BASE_URL": "https://api.example.com/",
            "DATASYNC_REST_PREFIX": "/rest/v1",
            "DATASYNC_API_TOKEN": "tok",
            "DATASYNC_TIMEOUT": "2.5",
            "DATASYNC_PAGE_SIZE": "50",
            "DATASYNC_TABLE": "notes",
            "DATASYNC_SEED_PATH": "seed.yaml",
            "DATASYNC_METRICS_PATH": "metrics/requests.log",
            "DATASYNC_LOG_HTTP": "yes",
            "DATASYNC_CACHE_TTL": "45",
            "DATASYNC_CACHE_MAX_SIZE": "5",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_app_config()

        self.assertEqual(config.db_path, "/tmp/x.db")
        self.assertEqual(config.base_url, "https://api.example.com")
        self.assertEqual(config.rest_prefix, "/rest/v1")
        self.assertEqual(config.api_token, "tok")
        self.assertEqual(config.request_timeout, 2.5)
        self.assertEqual(config.page_size, 50)
        self.assertEqual(config.table, "notes")
        self.assertEqual(config.seed_path, "seed.yaml")
        self.assertEqual(config.metrics_path, "metrics/requests.log")
        self.assertTrue(config.log_http)
        self.assertEqual(config.cache_ttl, 45.0)
        self.assertEqual(config.cache_max_size, 5)

    def test_invalid_numbers_raise(self):
        for name, value in (("DATASYNC_PAGE_SIZE", "many"), ("DATASYNC_TIMEOUT", "0"), ("DATASYNC_CACHE_TTL", "-1")):
            with self.subTest(name=name):
                with mock.patch.dict(os.environ, {name: value}, clear=True):
                    with self.assertRaisesRegex(RuntimeError, name):
                        load_app_config()


class ContainerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self.tmpdir.name)

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def test_sqlite_container_round_trip(self):
        seed = self.base / "seed.yaml"
        seed.write_text("records:\n  - id: a\n    title: Alpha\n", encoding="utf-8")
        config = AppConfig(db_path=str(self.base / "app.db"))

        async with bootstrap_app(config) as container:
            self.assertIsInstance(container.data_service, SQLiteDataService)
            await container.seed("items", str(seed))
            controller = container.record_collection("items")
            await controller.load_all()

        self.assertEqual(controller.snapshot.items, ({"id": "a", "title": "Alpha"},))

    async def test_cache_flag_wraps_data_service(self):
        config = AppConfig(db_path=str(self.base / "cached.db"), cache_ttl=30.0, cache_max_size=10)

        async with bootstrap_app(config) as container:
            service = container.data_service
            self.assertIsInstance(service, CachingDataService)
            await service.insert("items", {"id": "a"})
            await container.record_collection("items").load_all()
            stats = service.get_cache_stats()

        self.assertEqual(stats["list_cache_size"], 1)
        self.assertEqual(stats["max_cache_size"], 10)
        self.assertEqual(stats["default_ttl"], 30.0)

    async def test_rest_container_wires_interceptors(self):
        config = AppConfig(
            base_url="https://api.example.com",
            api_token="tok",
            log_http=True,
            metrics_path=str(self.base / "metrics" / "requests.log"),
        )

        container = create_container(config)
        try:
            self.assertIsInstance(container.data_service, RestDataService)
            self.assertEqual(
                [type(interceptor) for interceptor in container.network_client.interceptors],
                [AuthInterceptor, LoggingInterceptor, MetricsInterceptor],
            )
            self.assertTrue((self.base / "metrics").is_dir())
        finally:
            await container.close()
            metrics_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
            for handler in metrics_logger.handlers[:]:
                metrics_logger.removeHandler(handler)
                handler.close()


if __name__ == "__main__":
    unittest.main()
