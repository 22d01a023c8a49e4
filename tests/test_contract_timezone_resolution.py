from __future__ import annotations

import datetime as dt
import unittest

from timemanager.util.tz import local_datetime_from_ms, midnight_epoch_ms, normalize_tz_name, resolve_tz


class TestTimezoneResolutionContract(unittest.TestCase):
    def test_valid_timezone_identifiers_resolve(self) -> None:
        self.assertEqual(resolve_tz("UTC"), dt.timezone.utc)
        self.assertEqual(resolve_tz("z"), dt.timezone.utc)
        self.assertIsNotNone(resolve_tz("local"))
        self.assertEqual(resolve_tz("+02:00").utcoffset(None), dt.timedelta(hours=2))
        self.assertEqual(resolve_tz("-0530").utcoffset(None), -dt.timedelta(hours=5, minutes=30))

    def test_invalid_timezone_identifiers_raise(self) -> None:
        with self.assertRaises(ValueError):
            resolve_tz("No/Such_Zone")
        with self.assertRaises(ValueError):
            resolve_tz("+25:00")

    def test_normalize_tz_name(self) -> None:
        self.assertEqual(normalize_tz_name(None), "local")
        self.assertEqual(normalize_tz_name("  "), "local")
        self.assertEqual(normalize_tz_name("System"), "local")
        self.assertEqual(normalize_tz_name("gmt"), "UTC")
        self.assertEqual(normalize_tz_name("Asia/Tokyo"), "Asia/Tokyo")

    def test_midnight_edges(self) -> None:
        utc = dt.timezone.utc
        ms = midnight_epoch_ms(dt.date(2025, 7, 1), utc)
        self.assertEqual(ms, 1751328000000)
        self.assertEqual(local_datetime_from_ms(ms - 1, utc).date(), dt.date(2025, 6, 30))
        self.assertEqual(midnight_epoch_ms(dt.date(2025, 7, 1), resolve_tz("+09:00")), ms - 9 * 3600 * 1000)


if __name__ == "__main__":
    unittest.main(verbosity=2)
