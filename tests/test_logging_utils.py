import datetime as dt
import logging
import unittest

from utils import logging_utils
from utils.logging_utils import bind_time_point, build_logging_config, get_tagged_logger, mask_db_url


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        self.records.append(record)


class TestLoggingUtils(unittest.TestCase):
    def setUp(self):
        self.handler = _ListHandler()

    def _attach(self, adapter):
        base_logger = adapter.logger
        base_logger.setLevel(logging.DEBUG)
        base_logger.addHandler(self.handler)
        base_logger.propagate = False
        self.addCleanup(base_logger.removeHandler, self.handler)

    def test_build_logging_config_has_expected_handlers_and_filters(self):
        cfg = build_logging_config(job_name="jobtest")
        self.assertIn("stdout", cfg["handlers"])
        self.assertIn("stderr", cfg["handlers"])
        self.assertEqual(cfg["filters"]["job_name"]["job_name"], "jobtest")
        self.assertEqual(cfg["handlers"]["stderr"]["level"], "WARNING")

    def test_default_job_name(self):
        cfg = build_logging_config()
        self.assertEqual(cfg["filters"]["job_name"]["job_name"], "air_quality_collector")

    def test_get_tagged_logger_injects_tag(self):
        logger = get_tagged_logger("collector.test_tag", tag="custom_tag")
        self._attach(logger)

        logger.info("hello world")

        self.assertEqual(self.handler.records[-1].tag, "custom_tag")

    def test_bind_time_point_keeps_tag(self):
        logger = get_tagged_logger("collector.test_bind", tag="sampler")
        self._attach(logger)

        bound = bind_time_point(logger, dt.datetime(2023, 5, 28, 7, tzinfo=dt.timezone.utc))
        bound.warning("missing reading")

        record = self.handler.records[-1]
        self.assertEqual(record.tag, "sampler")
        self.assertEqual(record.time_point, "2023-05-28T07:00Z")
        # the original adapter is untouched
        self.assertNotIn("time_point", logger.extra)

    def test_ensure_context_filter_fills_defaults(self):
        record = logging.LogRecord("collector.storage.postgres", logging.INFO, __file__, 1, "msg", None, None)
        logging_utils.EnsureContextFilter().filter(record)
        self.assertEqual(record.tag, "postgres")
        self.assertEqual(record.time_point, "-")

    def test_setup_logging_override_applies_filters(self):
        root = logging.getLogger()
        orig_handlers = root.handlers[:]
        orig_level = root.level
        try:
            logging_utils.setup_logging(level="INFO", job_name="jobtest", override_existing=True)
            self.assertTrue(
                any(
                    any(f.__class__.__name__ == "JobNameFilter" for f in h.filters)
                    for h in root.handlers
                )
            )
        finally:
            root.handlers = orig_handlers
            root.setLevel(orig_level)
            logging_utils._CONFIGURED = False


class TestMaskDbUrl(unittest.TestCase):
    def test_masks_username_and_password_in_netloc(self):
        url = "postgresql+psycopg2://air:secret@db:5432/airdb"
        self.assertEqual(mask_db_url(url), "postgresql+psycopg2://***:***@db:5432/airdb")

    def test_leaves_urls_without_credentials(self):
        url = "sqlite:///tmp/air.sqlite"
        self.assertEqual(mask_db_url(url), url)

    def test_masks_only_sensitive_query_params(self):
        url = "postgresql://db/airdb?password=abc&sslmode=require"
        self.assertEqual(mask_db_url(url), "postgresql://db/airdb?password=%2A%2A%2A&sslmode=require")

    def test_returns_original_on_unparseable_input(self):
        self.assertEqual(mask_db_url("not a url"), "not a url")


if __name__ == "__main__":
    unittest.main()
