import datetime as dt
import unittest

from pydantic import ValidationError

from skyglance.config import Settings
from skyglance.data_sources import open_meteo_client
from factories import NOW, make_fix


class DummyResp:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


def _make_weather_payload():
    return {
        "timezone": "America/Los_Angeles",
        "current": {
            "time": "2025-06-01T10:00",
            "temperature_2m": 64.6,
            "wind_speed_10m": 9.5,
            "weather_code": 2,
            "uv_index": 4.4,
        },
        "hourly": {
            "time": ["2025-06-01T10:00", "2025-06-01T11:00", "2025-06-01T12:00"],
            "precipitation_probability": [10, None, 40],
            "precipitation": [0.0, 0.0, 0.02],
            "wind_gusts_10m": [12.1, 21.4, None],
            "weather_code": [2, 45, 61],
            "temperature_2m": [64.6, 66.0, 67.2],
            "uv_index": [4.4, 5.1, None],
        },
        "hourly_units": {
            "precipitation_probability": "%",
            "wind_gusts_10m": "mph",
        },
        "daily": {
            "time": ["2025-06-01", "2025-06-02"],
            "temperature_2m_max": [71.5, 69.0],
            "temperature_2m_min": [55.4, 54.0],
            "sunrise": ["2025-06-01T05:48", "2025-06-02T05:48"],
            "sunset": ["2025-06-01T20:30", "2025-06-02T20:31"],
            "wind_speed_10m_max": [18.2, 14.0],
            "weather_code": [3, 61],
        },
    }


class TestOpenMeteoClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = open_meteo_client.session
        self.calls = []

    def tearDown(self):
        open_meteo_client.session = self._orig_session

    def _install(self, payload):
        calls = self.calls

        def get(*args, **kwargs):
            calls.append((args, kwargs))
            return DummyResp(payload)

        open_meteo_client.session = type("S", (), {"get": staticmethod(get)})()

    def test_parse_forecast_current_and_daily(self):
        record = open_meteo_client.parse_forecast(_make_weather_payload())
        self.assertEqual(record.timezone, "America/Los_Angeles")
        self.assertEqual(record.current.temperature, 64.6)
        self.assertEqual(record.current.weather_code, 2)
        self.assertEqual(record.daily.temp_max, 71.5)
        self.assertEqual(record.daily.weather_code_tomorrow, 61)
        self.assertEqual(record.daily.sunrise.hour, 5)
        self.assertEqual(record.daily.sunrise.utcoffset(), dt.timedelta(hours=-7))

    def test_parse_forecast_hourly_nulls_read_as_zero(self):
        hours = open_meteo_client.parse_forecast(_make_weather_payload()).hourly
        self.assertEqual(len(hours), 3)
        self.assertEqual(hours[1].precipitation_probability, 0)
        self.assertEqual(hours[1].wind_gust, 21.4)
        self.assertEqual(hours[2].wind_gust, 0)
        self.assertEqual(hours[2].uv_index, 0)
        self.assertEqual(hours[0].time, NOW)

    def test_parse_forecast_single_day_has_no_tomorrow_code(self):
        payload = _make_weather_payload()
        payload["daily"]["weather_code"] = [3]
        record = open_meteo_client.parse_forecast(payload)
        self.assertIsNone(record.daily.weather_code_tomorrow)

    def test_parse_forecast_missing_current_raises(self):
        payload = _make_weather_payload()
        del payload["current"]
        with self.assertRaises(KeyError):
            open_meteo_client.parse_forecast(payload)

    def test_parse_forecast_malformed_value_raises(self):
        payload = _make_weather_payload()
        payload["current"]["temperature_2m"] = "warm"
        with self.assertRaises(ValidationError):
            open_meteo_client.parse_forecast(payload)

    def test_unexpected_units_warn(self):
        payload = _make_weather_payload()
        payload["hourly_units"]["wind_gusts_10m"] = "km/h"
        with self.assertLogs(open_meteo_client.logger.logger, level="WARNING"):
            open_meteo_client.parse_forecast(payload)

    def test_parse_air_quality_rounds_and_defaults(self):
        self.assertEqual(open_meteo_client.parse_air_quality({"current": {"us_aqi": 42.5}}).aqi, 43)
        self.assertEqual(open_meteo_client.parse_air_quality({"current": {"us_aqi": None}}).aqi, 0)

    def test_load_weather_passes_unit_and_location(self):
        self._install(_make_weather_payload())
        settings = Settings(temp_unit="C", http_timeout_seconds=3)

        record = open_meteo_client.load_weather(make_fix(), settings, NOW)

        self.assertEqual(len(record.hourly), 3)
        (url,), kwargs = self.calls[0]
        self.assertEqual(url, open_meteo_client.OPEN_METEO_WEATHER_URL)
        self.assertEqual(kwargs["params"]["temperature_unit"], "celsius")
        self.assertEqual(kwargs["params"]["wind_speed_unit"], "mph")
        self.assertEqual(kwargs["params"]["latitude"], 37.77)
        self.assertEqual(kwargs["timeout"], 3)

    def test_load_air_quality(self):
        self._install({"current": {"time": "2025-06-01T10:00", "us_aqi": 118}})
        record = open_meteo_client.load_air_quality(make_fix(), Settings(), NOW)
        self.assertEqual(record.aqi, 118)
        (url,), kwargs = self.calls[0]
        self.assertEqual(url, open_meteo_client.OPEN_METEO_AIR_URL)
        self.assertEqual(kwargs["params"]["current"], "us_aqi")


if __name__ == "__main__":
    unittest.main()
