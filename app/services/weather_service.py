import logging
import math

import requests
from flask import current_app

from app.errors import NotFoundError, UpstreamGenericError, UpstreamRateLimitError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

FORECAST_POINTS = 8

RAIN_HUMIDITY_THRESHOLD = 80
HEAT_THRESHOLD_CELSIUS = 35
WIND_THRESHOLD_MS = 10


def kelvin_to_celsius(kelvin):
    # half-up rounding so 0.5 readings do not flip with banker's rounding
    return int(math.floor(kelvin - 273.15 + 0.5))


class WeatherService:
    def __init__(self):
        self.base_url = "https://api.openweathermap.org"

    def _get_api_key(self):
        """Get OpenWeather API key from config"""
        api_key = current_app.config.get('OPENWEATHER_API_KEY')
        if not api_key:
            raise ValueError("OPENWEATHER_API_KEY not configured")
        return api_key

    def _get(self, path, params):
        """GET an OpenWeather endpoint with the configured timeout and map failures."""
        params = dict(params, appid=self._get_api_key())
        timeout = current_app.config.get('WEATHER_TIMEOUT', 10)
        try:
            response = requests.get(f"{self.base_url}{path}", params=params, timeout=timeout)
        except requests.Timeout:
            logger.error("Weather request to %s timed out after %ss", path, timeout)
            raise UpstreamTimeoutError()
        except requests.RequestException as e:
            logger.error("Weather request to %s failed: %s", path, e)
            raise UpstreamGenericError("Failed to fetch weather data")

        if response.status_code == 429:
            logger.error("Weather API rate limited: %s", response.text)
            raise UpstreamRateLimitError()
        if not response.ok:
            logger.error("Weather API error %s: %s", response.status_code, response.text)
            raise UpstreamGenericError("Failed to fetch weather data")
        return response.json()

    def geocode(self, location):
        """Resolve a free-text place name; the geocoder's top hit wins."""
        data = self._get("/geo/1.0/direct", {'q': location, 'limit': 1})
        if not data:
            raise NotFoundError("Location not found")
        place = data[0]
        return {
            "name": place.get('name', location),
            "country": place.get('country', 'Unknown'),
            "lat": place['lat'],
            "lon": place['lon']
        }

    def get_weather(self, location):
        """Current conditions plus the next 8 forecast points for a place name."""
        place = self.geocode(location)
        coords = {'lat': place['lat'], 'lon': place['lon']}

        # Standard units: Kelvin temperatures, m/s wind, metres visibility
        current = self._get("/data/2.5/weather", coords)
        forecast = self._get("/data/2.5/forecast", coords)

        condition = current['weather'][0]
        current_weather = {
            "temperature": kelvin_to_celsius(current['main']['temp']),
            "temperature_raw": round(current['main']['temp'] - 273.15, 2),
            "feels_like": kelvin_to_celsius(current['main']['feels_like']),
            "humidity": current['main']['humidity'],
            "pressure": current['main']['pressure'],
            "description": condition['description'],
            "weather_main": condition['main'],
            "icon": condition.get('icon'),
            "wind_speed": current.get('wind', {}).get('speed', 0),
            "wind_direction": current.get('wind', {}).get('deg', 0),
            "visibility": current.get('visibility', 0) / 1000,  # Convert to km
            "uv_index": 0,  # Not available on this endpoint
            "rain_chance": current.get('rain', {}).get('1h', 0),
        }

        forecast_points = []
        for item in forecast.get('list', [])[:FORECAST_POINTS]:
            forecast_points.append({
                "datetime": item.get('dt_txt'),
                "temperature": kelvin_to_celsius(item['main']['temp']),
                "humidity": item['main']['humidity'],
                "description": item['weather'][0]['description'],
                "icon": item['weather'][0].get('icon'),
                "rain_chance": round(item.get('pop', 0) * 100),  # Probability of precipitation as percentage
            })

        return {
            "current": current_weather,
            "forecast": forecast_points,
            "location": place
        }


def derive_alerts(weather):
    """
    Evaluate the alert thresholds independently against a weather snapshot
    from `WeatherService.get_weather`. When none fires, a single low-severity
    update is returned instead.
    """
    current = weather['current']
    place = weather.get('location', {}).get('name', 'your area')
    temperature = current['temperature']
    # thresholds use the unrounded reading when the snapshot carries it
    measured = current.get('temperature_raw', temperature)
    humidity = current['humidity']
    wind_speed = current.get('wind_speed') or 0
    condition = current.get('weather_main')
    readings = {
        "temperature": temperature,
        "humidity": humidity,
        "weather_condition": condition
    }

    alerts = []
    if condition == 'Rain' and humidity > RAIN_HUMIDITY_THRESHOLD:
        alerts.append({
            "type": "weather_alert",
            "title": "Heavy Rain Alert",
            "message": f"Heavy rain detected in {place}. Consider protecting your crops and check drainage systems.",
            "severity": "high",
            "data": dict(readings)
        })

    if measured > HEAT_THRESHOLD_CELSIUS:
        alerts.append({
            "type": "weather_alert",
            "title": "High Temperature Warning",
            "message": f"Temperature is {temperature}°C. Ensure adequate irrigation for your crops.",
            "severity": "medium",
            "data": dict(readings)
        })

    if wind_speed > WIND_THRESHOLD_MS:
        alerts.append({
            "type": "weather_alert",
            "title": "Strong Wind Alert",
            "message": f"Wind speed is {wind_speed} m/s. Secure loose equipment and check tree supports.",
            "severity": "medium",
            "data": {"wind_speed": wind_speed, "weather_condition": condition}
        })

    if not alerts:
        alerts.append({
            "type": "weather_alert",
            "title": "Weather Update",
            "message": f"Current weather in {place}: {current.get('description')}, {temperature}°C",
            "severity": "low",
            "data": dict(readings)
        })
    return alerts
