"""Scripted stand-ins for the upstream providers used across the test suite."""
import json
from types import SimpleNamespace

import httpx


class FakeMessages:
    def __init__(self):
        self.calls = []
        self.replies = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=reply)] if reply else [],
            usage=SimpleNamespace(input_tokens=10, output_tokens=20),
        )


class FakeAnthropic:
    """Quacks like anthropic.Anthropic for messages.create; replies are queued per test."""

    def __init__(self):
        self.messages = FakeMessages()

    def reply_with(self, *replies):
        self.messages.replies.extend(replies)

    @property
    def calls(self):
        return self.messages.calls


def anthropic_error(error_class, status_code, body="upstream said no: internal-trace-id-123"):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status_code, request=request, text=body)
    return error_class(body, response=response, body=None)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


def geocode_payload(name="Chennai", country="IN", lat=13.0827, lon=80.2707):
    return [{"name": name, "country": country, "lat": lat, "lon": lon}]


def current_payload(temp_k=311.15, humidity=60, wind_speed=5, main="Clear", description="clear sky", rain=None):
    payload = {
        "name": "Chennai",
        "main": {"temp": temp_k, "feels_like": temp_k + 3, "humidity": humidity, "pressure": 1008},
        "weather": [{"main": main, "description": description, "icon": "01d"}],
        "wind": {"speed": wind_speed, "deg": 90},
        "visibility": 6000,
    }
    if rain is not None:
        payload["rain"] = {"1h": rain}
    return payload


def forecast_payload(points=10):
    return {
        "list": [
            {
                "dt_txt": f"2026-10-19 {(3 * i) % 24:02d}:00:00",
                "main": {"temp": 300.15, "humidity": 70},
                "weather": [{"description": "light rain", "icon": "10d"}],
                "pop": 0.35,
            }
            for i in range(points)
        ]
    }


class FakeOpenWeather:
    """Routes requests.get by URL suffix to canned responses and records each call."""

    def __init__(self):
        self.calls = []
        self.routes = {}
        self.error = None

    def serve(self, geocode=None, current=None, forecast=None):
        self.routes["/geo/1.0/direct"] = _as_response(geocode if geocode is not None else geocode_payload())
        self.routes["/data/2.5/weather"] = _as_response(current or current_payload())
        self.routes["/data/2.5/forecast"] = _as_response(forecast or forecast_payload())

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"unexpected weather call {url}")


def _as_response(value):
    return value if isinstance(value, FakeResponse) else FakeResponse(value)
