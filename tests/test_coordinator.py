import itertools
import threading
import time
import unittest

from skyglance.config import Settings
from skyglance.coordinator import AggregationCoordinator
from skyglance.domain import SourceKind, SourceRecord
from skyglance.position import PositionResolver
from skyglance.position_store import InMemoryPositionStore
from skyglance.sinks import MemorySink
from factories import NOW, make_air, make_fix, make_pollen, make_slot, make_tide, make_transit, make_weather


class FixedProvider:
    def __init__(self, fix=None):
        self.fix = fix

    def get_fix(self, settings):
        return self.fix


class StubAdapter:
    def __init__(self, kind, value=None, *, delay=0.0, error=None):
        self.kind = kind
        self.value = value
        self.delay = delay
        self.error = error
        self.calls = []

    def load(self, fix, settings, now):
        self.calls.append((fix, settings, now, threading.current_thread().name))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return SourceRecord.of(self.kind, self.value)


def _values():
    return {
        SourceKind.WEATHER: make_weather(),
        SourceKind.AIR_QUALITY: make_air(57),
        SourceKind.TIDE: make_tide(),
        SourceKind.TRANSIT: make_transit(4, 11),
        SourceKind.POLLEN: make_pollen(1, 2, 0),
    }


def _coordinator(adapters, fix=None, sink=None):
    resolver = PositionResolver(InMemoryPositionStore(), FixedProvider(fix or make_fix()))
    return AggregationCoordinator(
        resolver,
        adapters=adapters,
        sink=sink or MemorySink(),
        location_namer=lambda f: "San Francisco",
        clock=lambda: NOW,
    )


class TestAggregationCoordinator(unittest.TestCase):
    def test_full_cycle_sends_one_payload(self):
        sink = MemorySink()
        adapters = [StubAdapter(kind, value) for kind, value in _values().items()]
        payload = _coordinator(adapters, sink=sink).run_cycle(Settings())

        self.assertIs(sink.latest, payload)
        self.assertEqual(payload.temperature, 65)
        self.assertEqual(payload.aqi, 57)
        self.assertEqual(payload.muni_next_1, 4)
        self.assertEqual(payload.location_name, "San Francisco")
        self.assertEqual(payload.alert_active, 0)

    def test_every_adapter_gets_same_fix_settings_and_time(self):
        settings = Settings()
        adapters = [StubAdapter(kind, value) for kind, value in _values().items()]
        _coordinator(adapters).run_cycle(settings)
        seen = {(fix, id(s), now) for a in adapters for fix, s, now, _ in a.calls}
        self.assertEqual(seen, {(make_fix(), id(settings), NOW)})
        self.assertTrue(all(a.calls[0][3].startswith("source") for a in adapters))

    def test_any_absent_subset_still_yields_payload(self):
        values = _values()
        kinds = list(SourceKind)
        for size in range(1, len(kinds) + 1):
            for absent in itertools.combinations(kinds, size):
                adapters = [StubAdapter(k, None if k in absent else values[k]) for k in kinds]
                payload = _coordinator(adapters).run_cycle(Settings())
                self.assertIsNotNone(payload, absent)
                if SourceKind.WEATHER in absent:
                    self.assertEqual((payload.temperature, payload.sunrise), (0, 0))
                if SourceKind.TIDE in absent:
                    self.assertEqual(payload.tide_next_time, 0)
                if SourceKind.TRANSIT in absent:
                    self.assertEqual((payload.muni_next_1, payload.muni_next_2), (-1, -1))
                else:
                    self.assertEqual(payload.muni_next_1, 4)
                if SourceKind.POLLEN in absent:
                    self.assertEqual(payload.pollen_tree, -1)

    def test_waits_for_slow_sources(self):
        values = _values()
        adapters = [StubAdapter(k, v, delay=0.2 if k is SourceKind.TIDE else 0.0) for k, v in values.items()]
        payload = _coordinator(adapters).run_cycle(Settings())
        self.assertEqual(payload.tide_next_type, 1)

    def test_adapter_bug_reads_as_absent(self):
        values = _values()
        adapters = [
            StubAdapter(k, v, error=RuntimeError("boom") if k is SourceKind.POLLEN else None)
            for k, v in values.items()
        ]
        with self.assertLogs(level="ERROR"):
            payload = _coordinator(adapters).run_cycle(Settings())
        self.assertEqual(payload.pollen_tree, -1)
        self.assertEqual(payload.aqi, 57)

    def test_no_position_sends_nothing(self):
        sink = MemorySink()
        adapters = [StubAdapter(kind, value) for kind, value in _values().items()]
        resolver = PositionResolver(InMemoryPositionStore(), FixedProvider(None))
        coordinator = AggregationCoordinator(resolver, adapters=adapters, sink=sink, clock=lambda: NOW)

        self.assertIsNone(coordinator.run_cycle(Settings()))
        self.assertIsNone(sink.latest)
        self.assertTrue(all(not a.calls for a in adapters))

    def test_alert_reaches_payload(self):
        values = _values()
        slots = [make_slot(h) for h in range(24)]
        slots[2] = make_slot(2, weather_code=97, wind_gust=25)
        values[SourceKind.WEATHER] = make_weather(slots)
        values[SourceKind.AIR_QUALITY] = make_air(120)
        adapters = [StubAdapter(k, v) for k, v in values.items()]
        payload = _coordinator(adapters).run_cycle(Settings())
        self.assertEqual(payload.alert_active, 1)
        self.assertEqual(payload.alert_text, "Thunderstorm 12PM-1PM")

    def test_reported_fix_is_used(self):
        adapters = [StubAdapter(kind, value) for kind, value in _values().items()]
        reported = make_fix(latitude=47.61, longitude=-122.33)
        _coordinator(adapters).run_cycle(Settings(), reported=reported)
        self.assertEqual(adapters[0].calls[0][0], reported)


if __name__ == "__main__":
    unittest.main()
