# finmemory/tests/test_geolocation.py
import unittest

from finmemory.core.geolocation import GeolocationError, ReportedLocationSource, acquire_position
from finmemory.core.models import GeoCoordinate

NOW = 1_760_000_000.0


def clock():
    return NOW


class TestReportedLocationSource(unittest.IsolatedAsyncioTestCase):
    async def test_fresh_reading_in_milliseconds(self):
        source = ReportedLocationSource.from_payload(
            {"lat": -23.5, "lng": -46.6, "timestamp": (NOW - 60) * 1000}, clock=clock
        )
        self.assertEqual(await acquire_position(source), GeoCoordinate(-23.5, -46.6))

    async def test_reading_without_timestamp_is_accepted(self):
        source = ReportedLocationSource.from_payload({"lat": "-22.9", "lng": "-43.2"}, clock=clock)
        self.assertEqual(await acquire_position(source), GeoCoordinate(-22.9, -43.2))

    async def test_reading_older_than_five_minutes_is_rejected(self):
        source = ReportedLocationSource.from_payload(
            {"lat": -23.5, "lng": -46.6, "timestamp": (NOW - 301) * 1000}, clock=clock
        )
        with self.assertRaises(GeolocationError):
            await acquire_position(source)

    async def test_iso_timestamp(self):
        source = ReportedLocationSource.from_payload(
            {"lat": 1, "lng": 2, "timestamp": "2020-01-01T00:00:00Z"}, clock=clock
        )
        with self.assertRaises(GeolocationError):
            await acquire_position(source)

    async def test_denied_missing_or_out_of_range(self):
        for payload in [None, {}, {"error": "PERMISSION_DENIED"}, {"lat": 1}, {"lat": 91, "lng": 0}, "x"]:
            with self.assertRaises(GeolocationError, msg=payload):
                await acquire_position(ReportedLocationSource.from_payload(payload, clock=clock))

    async def test_no_source(self):
        with self.assertRaises(GeolocationError):
            await acquire_position(None)


if __name__ == "__main__":
    unittest.main()
