import dataclasses
import datetime as dt
import unittest

from collector.models import Location, Overlay, Sample


class TestModels(unittest.TestCase):
    def test_overlay_tokens(self):
        self.assertEqual([o.value for o in Overlay], ["pm1", "pm2.5", "pm10"])

    def test_sample_row_mapping(self):
        ts = dt.datetime(2023, 5, 28, 1, tzinfo=dt.timezone.utc)
        sample = Sample(ts, "60.17° N, 24.94° E", 270, 15, 1.0, 2.5, 10.0)
        self.assertEqual(
            sample.as_row(),
            {
                "timestamp": ts,
                "coords": "60.17° N, 24.94° E",
                "wind_direction": 270,
                "wind_speed": 15,
                "pm1": 1.0,
                "pm25": 2.5,
                "pm10": 10.0,
            },
        )

    def test_location_is_immutable(self):
        loc = Location(60.1695, 24.9354)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            loc.latitude = 0.0


if __name__ == "__main__":
    unittest.main()
