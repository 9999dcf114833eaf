import unittest

from skyglance.config import Settings
from skyglance.data_sources import google_pollen
from factories import NOW, make_fix


class DummyResp:
    url = "https://pollen.googleapis.com/v1/forecast:lookup?key=secret&days=1"
    status_code = 200

    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


def _type(code, value=None):
    entry = {"code": code, "displayName": code.title(), "inSeason": True}
    if value is not None:
        entry["indexInfo"] = {"code": "UPI", "value": value, "category": "Moderate"}
    return entry


def _make_pollen_payload(type_info):
    return {
        "regionCode": "US",
        "dailyInfo": [
            {"date": {"year": 2025, "month": 6, "day": 1}, "pollenTypeInfo": type_info},
        ],
    }


class TestParsePollen(unittest.TestCase):
    def test_reads_all_categories(self):
        record = google_pollen.parse_pollen(
            _make_pollen_payload([_type("GRASS", 4), _type("TREE", 2), _type("WEED", 1)])
        )
        self.assertEqual((record.tree, record.grass, record.weed), (2, 4, 1))

    def test_missing_index_info_reads_as_zero(self):
        record = google_pollen.parse_pollen(_make_pollen_payload([_type("TREE", 3), _type("WEED")]))
        self.assertEqual((record.tree, record.grass, record.weed), (3, 0, 0))

    def test_unknown_codes_are_ignored(self):
        record = google_pollen.parse_pollen(_make_pollen_payload([_type("MOLD", 5)]))
        self.assertEqual((record.tree, record.grass, record.weed), (0, 0, 0))

    def test_missing_day_or_listing_is_absent(self):
        self.assertIsNone(google_pollen.parse_pollen({"regionCode": "US"}))
        self.assertIsNone(google_pollen.parse_pollen({"dailyInfo": []}))
        self.assertIsNone(google_pollen.parse_pollen({"dailyInfo": [{"date": {}}]}))


class TestLoadPollen(unittest.TestCase):
    def setUp(self):
        self._orig_session = google_pollen.session
        self.calls = []

    def tearDown(self):
        google_pollen.session = self._orig_session

    def test_load_pollen_sends_key_and_location(self):
        calls = self.calls
        payload = _make_pollen_payload([_type("TREE", 5)])

        def get(*args, **kwargs):
            calls.append(kwargs)
            return DummyResp(payload)

        google_pollen.session = type("S", (), {"get": staticmethod(get)})()
        settings = Settings(pollen_enabled=True, pollen_api_key="secret")

        with self.assertLogs(google_pollen.logger.logger, level="DEBUG") as captured:
            record = google_pollen.load_pollen(make_fix(), settings, NOW)

        self.assertEqual(record.tree, 5)
        params = calls[0]["params"]
        self.assertEqual(params["key"], "secret")
        self.assertEqual(params["location.latitude"], 37.77)
        self.assertEqual(params["days"], 1)
        self.assertFalse(any("secret" in r.getMessage() for r in captured.records))

    def test_enabled_requires_key(self):
        self.assertFalse(google_pollen.pollen_enabled(Settings(pollen_enabled=True)))
        self.assertFalse(google_pollen.pollen_enabled(Settings(pollen_api_key="k")))
        self.assertTrue(google_pollen.pollen_enabled(Settings(pollen_enabled=True, pollen_api_key="k")))


if __name__ == "__main__":
    unittest.main()
