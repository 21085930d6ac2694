import pytest
import asyncio
from unittest.mock import Mock
import sys
import os

import requests

# Add the parent directory to the path to import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from tripsynth.config import settings
from tripsynth.models.itinerary import AlertSeverity, Attraction, ContextSnapshot, NEUTRAL_WEATHER, WeatherAlert, WeatherSnapshot
from tripsynth.services.context_service import (
    ContextGatherer,
    DistanceMatrixProvider,
    HKOWeatherProvider,
    travel_time_summary,
)

CURRENT_WEATHER = {
    "icon": [63],
    "temperature": {"data": [{"place": "Hong Kong Observatory", "value": 28, "unit": "C"}]},
    "humidity": {"data": [{"place": "Hong Kong Observatory", "value": 88, "unit": "percent"}]},
    "uvindex": {"data": [{"place": "King's Park", "value": 3, "desc": "moderate"}]},
}

WARNINGS = {
    "WRAIN": {"name": "Rainstorm Warning Signal", "code": "WRAINA", "type": "Amber", "actionCode": "ISSUE"},
    "WTCSGNL": {"name": "Tropical Cyclone Warning Signal", "code": "TC8NE", "actionCode": "ISSUE"},
}

ATTRACTIONS = [
    Attraction(id="a", name="Alpha", category="cultural", location={"lat": 22.28, "lng": 114.15}),
    Attraction(id="b", name="Bravo", category="food", location={"lat": 22.30, "lng": 114.17}),
    Attraction(id="c", name="Charlie", category="nature"),
]


def json_response(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


def hko_session(current, warnings):
    session = Mock()

    def get(url, timeout=None):
        if url == settings.hko_current_weather_url:
            return json_response(current)
        return json_response(warnings)

    session.get.side_effect = get
    return session


class TestHKOWeatherProvider:
    def test_current_weather_and_alerts(self):
        provider = HKOWeatherProvider(session=hko_session(CURRENT_WEATHER, {}))

        weather, alerts = provider.fetch()

        assert weather.condition == "rain"
        assert weather.temperature == 28
        assert weather.humidity == 88
        assert weather.uvIndex == 3
        assert alerts == []

    def test_typhoon_signal_overrides_condition(self):
        provider = HKOWeatherProvider(session=hko_session(CURRENT_WEATHER, WARNINGS))

        weather, alerts = provider.fetch()

        assert weather.condition == "typhoon"
        by_id = {a.id: a for a in alerts}
        assert by_id["TC8NE"].severity == AlertSeverity.critical
        assert by_id["TC8NE"].type == "typhoon"
        assert by_id["WRAINA"].severity == AlertSeverity.advisory
        assert by_id["WRAINA"].message == "Rainstorm Warning Signal (Amber)"

    @pytest.mark.parametrize("code,subtype,expected", [
        ("WTCSGNL", "TC1", AlertSeverity.warning),
        ("WTCSGNL", "TC10", AlertSeverity.critical),
        ("WRAIN", "WRAINB", AlertSeverity.critical),
        ("WRAIN", "WRAINR", AlertSeverity.warning),
        ("WL", None, AlertSeverity.warning),
        ("WHOT", None, AlertSeverity.advisory),
    ])
    def test_alert_severity(self, code, subtype, expected):
        assert HKOWeatherProvider._alert_severity(code, subtype) == expected

    def test_provider_failure_degrades_to_neutral(self):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        provider = HKOWeatherProvider(session=session)

        weather, alerts = provider.fetch()

        assert weather == NEUTRAL_WEATHER
        assert weather.temperature == 26
        assert weather.uvIndex == 6.2
        assert alerts == []

    def test_missing_readings_use_neutral_values(self):
        provider = HKOWeatherProvider(session=hko_session({"icon": [50]}, {}))

        weather, _ = provider.fetch()

        assert weather.condition == "sunny"
        assert weather.temperature == NEUTRAL_WEATHER.temperature


class TestDistanceMatrixProvider:
    def test_disabled_without_api_key(self):
        session = Mock()
        provider = DistanceMatrixProvider(api_key="", session=session)

        assert provider.fetch_matrix(ATTRACTIONS) == {}
        session.get.assert_not_called()

    def test_matrix_uses_traffic_durations(self):
        data = {
            "status": "OK",
            "rows": [
                {"elements": [
                    {"status": "OK", "duration": {"value": 0}},
                    {"status": "OK", "duration": {"value": 600}, "duration_in_traffic": {"value": 725}},
                ]},
                {"elements": [
                    {"status": "ZERO_RESULTS"},
                    {"status": "OK", "duration": {"value": 0}},
                ]},
            ],
        }
        session = Mock()
        session.get.return_value = json_response(data)
        provider = DistanceMatrixProvider(api_key="test-key", session=session)

        matrix = provider.fetch_matrix(ATTRACTIONS)

        assert matrix == {"a": {"b": 13}}
        params = session.get.call_args.kwargs["params"]
        assert params["departure_time"] == "now"
        assert params["origins"].count("|") == 1

    def test_api_error_status(self):
        session = Mock()
        session.get.return_value = json_response({"status": "REQUEST_DENIED"})
        provider = DistanceMatrixProvider(api_key="test-key", session=session)

        assert provider.fetch_matrix(ATTRACTIONS) == {}

    def test_network_error(self):
        session = Mock()
        session.get.side_effect = requests.Timeout("slow")
        provider = DistanceMatrixProvider(api_key="test-key", session=session)

        assert provider.fetch_matrix(ATTRACTIONS) == {}


def test_travel_time_summary():
    assert travel_time_summary({}, ATTRACTIONS) == "Traffic data: Not available"

    summary = travel_time_summary({"a": {"b": 13, "c": 40}}, ATTRACTIONS)

    assert "Total routes analyzed: 2" in summary
    assert summary.index("Alpha → Charlie: 40min") < summary.index("Alpha → Bravo: 13min")


class TestContextGatherer:
    def test_both_providers(self):
        weather_provider = Mock()
        weather_provider.fetch.return_value = (
            WeatherSnapshot(condition="sunny", temperature=30),
            [
                WeatherAlert(id="low", title="Low", severity=AlertSeverity.info),
                WeatherAlert(id="high", title="High", severity=AlertSeverity.critical),
            ],
        )
        traffic_provider = Mock()
        traffic_provider.fetch_matrix.return_value = {"a": {"b": 13}}

        snapshot = asyncio.run(ContextGatherer(weather_provider, traffic_provider).gather(ATTRACTIONS))

        assert snapshot.weather.condition == "sunny"
        assert [a.id for a in snapshot.alerts] == ["high", "low"]
        assert snapshot.travelTimes == {"a": {"b": 13}}
        traffic_provider.fetch_matrix.assert_called_once_with(ATTRACTIONS)

    def test_each_provider_may_fail_independently(self):
        weather_provider = Mock()
        weather_provider.fetch.side_effect = RuntimeError("weather down")
        traffic_provider = Mock()
        traffic_provider.fetch_matrix.return_value = {"a": {"b": 13}}

        snapshot = asyncio.run(ContextGatherer(weather_provider, traffic_provider).gather(ATTRACTIONS))

        assert snapshot.weather == NEUTRAL_WEATHER
        assert snapshot.alerts == []
        assert snapshot.travelTimes == {"a": {"b": 13}}

        weather_provider.fetch.side_effect = None
        weather_provider.fetch.return_value = (WeatherSnapshot(condition="fine"), [])
        traffic_provider.fetch_matrix.side_effect = RuntimeError("traffic down")

        snapshot = asyncio.run(ContextGatherer(weather_provider, traffic_provider).gather(ATTRACTIONS))

        assert snapshot.weather.condition == "fine"
        assert snapshot.travelTimes == {}


SPREAD_OUT = [
    Attraction(id=f"site-{i}", name=f"Site {i}", category="cultural", location={"lat": 22.2 + i / 100, "lng": 114.1})
    for i in range(12)
]

PAIR_MATRIX = {
    "status": "OK",
    "rows": [
        {"elements": [{"status": "OK", "duration": {"value": 0}}, {"status": "OK", "duration": {"value": 600}}]},
        {"elements": [{"status": "OK", "duration": {"value": 1200}}, {"status": "OK", "duration": {"value": 0}}]},
    ],
}


class TestTravelTimeExtension:
    def snapshot(self):
        return ContextSnapshot(weather=NEUTRAL_WEATHER, travelTimes={"site-0": {"site-1": 5}})

    def test_candidates_beyond_first_matrix_are_fetched_and_merged(self):
        session = Mock()
        session.get.return_value = json_response(PAIR_MATRIX)
        gatherer = ContextGatherer(Mock(), DistanceMatrixProvider(api_key="test-key", session=session))

        extended = asyncio.run(gatherer.extend_travel_times(self.snapshot(), SPREAD_OUT, [SPREAD_OUT[0], SPREAD_OUT[11]]))

        session.get.assert_called_once()
        assert session.get.call_args.kwargs["params"]["origins"].count("|") == 1
        assert extended.travelTimes == {
            "site-0": {"site-1": 5, "site-11": 10},
            "site-11": {"site-0": 20},
        }

    def test_covered_candidates_need_no_second_request(self):
        session = Mock()
        gatherer = ContextGatherer(Mock(), DistanceMatrixProvider(api_key="test-key", session=session))
        snapshot = self.snapshot()

        extended = asyncio.run(gatherer.extend_travel_times(snapshot, SPREAD_OUT, SPREAD_OUT[2:5]))

        assert extended is snapshot
        session.get.assert_not_called()

    def test_no_api_key_leaves_context_unchanged(self):
        session = Mock()
        gatherer = ContextGatherer(Mock(), DistanceMatrixProvider(api_key="", session=session))
        snapshot = self.snapshot()

        extended = asyncio.run(gatherer.extend_travel_times(snapshot, SPREAD_OUT, SPREAD_OUT[10:]))

        assert extended is snapshot
        session.get.assert_not_called()

    def test_failed_second_request_keeps_first_matrix(self):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        gatherer = ContextGatherer(Mock(), DistanceMatrixProvider(api_key="test-key", session=session))

        extended = asyncio.run(gatherer.extend_travel_times(self.snapshot(), SPREAD_OUT, SPREAD_OUT[10:]))

        assert extended.travelTimes == {"site-0": {"site-1": 5}}
