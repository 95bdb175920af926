import datetime as dt
import os
import unittest
from unittest import mock

import run_collector
from collector.exceptions import DatabaseNotReadyError
from collector.storage.memory import InMemorySampleSink

PAGES = {
    "pm1": (
        '<div data-name="spotlight-coords">51.50° N, 0.12° W</div>'
        '<div data-name="spotlight-a">90 at 4</div>'
        '<div data-name="spotlight-b"><div aria-label="value">1</div></div>'
    ),
    "pm2.5": '<div data-name="spotlight-b"><div aria-label="value">2</div></div>',
    "pm10": '<div data-name="spotlight-b"><div aria-label="value">3</div></div>',
}


class FixtureRenderer:
    def __init__(self):
        self.urls = []

    async def render(self, url):
        self.urls.append(url)
        return PAGES[url.split("overlay=")[1].split("/")[0]]


def _clean_env():
    return {k: v for k, v in os.environ.items() if not k.startswith("COLLECTOR_")}


class TestArgs(unittest.TestCase):
    def test_cli_overrides_settings(self):
        args = run_collector.parse_args(
            ["--lat", "51.5", "--lon", "-0.12", "--start", "2023-01-01", "--end", "2023-01-02", "--concurrency", "2"]
        )
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            settings = run_collector.build_settings(args)
        self.assertEqual(settings.latitude, 51.5)
        self.assertEqual(settings.longitude, -0.12)
        self.assertEqual(settings.start_date, dt.date(2023, 1, 1))
        self.assertEqual(settings.end_date, dt.date(2023, 1, 2))
        self.assertEqual(settings.max_concurrency, 2)

    def test_unset_options_fall_back_to_environment(self):
        env = _clean_env()
        env["COLLECTOR_MAX_CONCURRENCY"] = "3"
        with mock.patch.dict(os.environ, env, clear=True):
            settings = run_collector.build_settings(run_collector.parse_args([]))
        self.assertEqual(settings.max_concurrency, 3)
        self.assertEqual(settings.latitude, 60.1695)

    def test_bad_date_is_rejected(self):
        with self.assertRaises(SystemExit):
            run_collector.parse_args(["--start", "28/05/2023"])

    def test_invalid_configuration_exit_code(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True), \
                mock.patch.object(run_collector, "setup_logging"):
            self.assertEqual(run_collector.main(["--concurrency", "0"]), 2)

    def test_invalid_environment_exit_code(self):
        env = _clean_env()
        env["COLLECTOR_MAX_CONCURRENCY"] = "0"
        with mock.patch.dict(os.environ, env, clear=True), \
                mock.patch.object(run_collector, "setup_logging"), \
                mock.patch.object(run_collector, "_collect_with_browser") as collect:
            self.assertEqual(run_collector.main([]), 2)
        collect.assert_not_called()

    def test_config_module_does_not_read_environment_on_import(self):
        from collector import config

        self.assertFalse(hasattr(config, "settings"))


class TestCollect(unittest.IsolatedAsyncioTestCase):
    async def test_empty_window_collects_nothing(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            settings = run_collector.build_settings(
                run_collector.parse_args(["--lat", "51.5", "--lon", "-0.12", "--start", "2023-01-01", "--end", "2023-01-01"])
            )
        renderer = FixtureRenderer()
        sink = InMemorySampleSink()

        await run_collector.collect(settings, sink, renderer)

        self.assertEqual(sink.samples, [])
        self.assertEqual(renderer.urls, [])

    async def test_one_day(self):
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            settings = run_collector.build_settings(
                run_collector.parse_args(["--start", "2023-01-01", "--end", "2023-01-02"])
            )
        sink = InMemorySampleSink()

        await run_collector.collect(settings, sink, FixtureRenderer())

        samples = sink.samples
        self.assertEqual(len(samples), 24)
        self.assertEqual(samples[0].timestamp, dt.datetime(2023, 1, 1, tzinfo=dt.timezone.utc))
        self.assertEqual((samples[5].wind_direction, samples[5].wind_speed), (90, 4))
        self.assertEqual((samples[5].pm1, samples[5].pm25, samples[5].pm10), (1.0, 2.0, 3.0))


class TestMain(unittest.TestCase):
    def test_database_not_ready_exits_with_1(self):
        class NotReadySink:
            def wait_until_ready(self, **kwargs):
                raise DatabaseNotReadyError("timed out")

        from collector.storage import postgres

        with mock.patch.dict(os.environ, _clean_env(), clear=True), \
                mock.patch.object(run_collector, "setup_logging"), \
                mock.patch.object(postgres.PostgresSampleSink, "from_url", return_value=NotReadySink()), \
                mock.patch.object(run_collector, "_collect_with_browser") as collect:
            self.assertEqual(run_collector.main([]), 1)
        collect.assert_not_called()

    def test_successful_run_exits_with_0(self):
        sink = mock.Mock()

        async def fake_collect(settings, s):
            self.assertIs(s, sink)

        from collector.storage import postgres

        with mock.patch.dict(os.environ, _clean_env(), clear=True), \
                mock.patch.object(run_collector, "setup_logging"), \
                mock.patch.object(postgres.PostgresSampleSink, "from_url", return_value=sink), \
                mock.patch.object(run_collector, "_collect_with_browser", side_effect=fake_collect):
            self.assertEqual(run_collector.main(["--start", "2023-01-01", "--end", "2023-01-02"]), 0)
        sink.wait_until_ready.assert_called_once()
        sink.create_schema.assert_called_once()


if __name__ == "__main__":
    unittest.main()
