"""날씨 콘텐츠 모듈 — Open-Meteo API에서 현재 날씨·시간별 예보를 가져온다."""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

logger = logging.getLogger(__name__)

# WMO 날씨 코드 → 표시용 설명
_WMO_DESCRIPTIONS = {
    0: "Clear",           # Clear sky
    1: "Mostly Clear",    # Mainly clear
    2: "Partly Cloudy",   # Partly cloudy
    3: "Overcast",        # Overcast
    45: "Fog",            # Fog
    48: "Fog",            # Depositing rime fog
    51: "Drizzle",        # Drizzle light
    53: "Drizzle",        # Drizzle moderate
    55: "Drizzle",        # Drizzle dense
    56: "Drizzle",        # Freezing drizzle light
    57: "Drizzle",        # Freezing drizzle dense
    61: "Rain",           # Rain slight
    63: "Rain",           # Rain moderate
    65: "Heavy Rain",     # Rain heavy
    66: "Sleet",          # Freezing rain light
    67: "Sleet",          # Freezing rain heavy
    71: "Snow",           # Snow slight
    73: "Snow",           # Snow moderate
    75: "Heavy Snow",     # Snow heavy
    77: "Snow",           # Snow grains
    80: "Showers",        # Rain showers slight
    81: "Showers",        # Rain showers moderate
    82: "Showers",        # Rain showers violent
    85: "Snow Showers",   # Snow showers slight
    86: "Snow Showers",   # Snow showers heavy
    95: "Thunder",        # Thunderstorm
    96: "Thunder",        # Thunderstorm with slight hail
    99: "Thunder",        # Thunderstorm with heavy hail
}

_COMPASS = ("N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
            "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW")

# units → (temperature_unit, wind_speed_unit, 온도 표기, 풍속 표기)
_UNIT_PARAMS = {
    "metric": ("celsius", "ms", "C", "m/s"),
    "imperial": ("fahrenheit", "mph", "F", "mph"),
}

MAX_HOURLY_ENTRIES = 4


class WeatherFetchError(Exception):
    """네트워크 오류 또는 응답 파싱 실패."""


@dataclass(frozen=True)
class CurrentWeather:
    """현재 날씨."""
    city: str
    temp: float
    temp_unit: str        # "C" / "F"
    description: str
    wind_speed: float
    wind_unit: str        # "m/s" / "mph"
    wind_dir: str         # 16방위 (N, NNE, ...)
    temp_high: float
    temp_low: float


@dataclass(frozen=True)
class HourlyEntry:
    """시간별 예보 한 칸."""
    time: str             # "HH:MM"
    temp: float
    wind_speed: float
    wind_dir: str


@dataclass(frozen=True)
class HourlyForecast:
    """시간별 예보 (최대 max_entries개)."""
    city: str
    entries: tuple[HourlyEntry, ...]
    temp_unit: str
    wind_unit: str


def compass_direction(degrees: float) -> str:
    """풍향 각도(0~360) → 16방위 문자열."""
    return _COMPASS[int((degrees % 360) / 22.5 + 0.5) % 16]


def _unit_params(units: str) -> tuple[str, str, str, str]:
    try:
        return _UNIT_PARAMS[units]
    except KeyError:
        raise ValueError(f"지원하지 않는 단위: {units!r} (metric/imperial)") from None


class OpenMeteoWeatherProvider:
    """Open-Meteo API에서 날씨를 가져온다 (API 키 불필요).

    Open-Meteo는 지명을 돌려주지 않으므로 표시용 도시 이름은 설정에서 받는다.
    """

    API_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(self, city: str = "", timeout_sec: float = 10):
        self._city = city
        self._timeout = timeout_sec

    async def fetch_current(self, lat: float, lon: float, units: str) -> CurrentWeather:
        """현재 날씨와 오늘 최고/최저 기온을 가져온다."""
        temp_unit, wind_unit, temp_label, wind_label = _unit_params(units)
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m,weather_code,wind_speed_10m,wind_direction_10m",
            "daily": "temperature_2m_max,temperature_2m_min",
            "temperature_unit": temp_unit,
            "wind_speed_unit": wind_unit,
            "timezone": "auto",
            "forecast_days": 1,
        }
        result = await self._get_json(params)
        try:
            data = parse_current(result, self._city, temp_label, wind_label)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise WeatherFetchError(f"현재 날씨 응답 파싱 실패: {e!r}") from e

        logger.info("날씨 갱신(현재): %s %.1f%s %s",
                    data.city, data.temp, data.temp_unit, data.description)
        return data

    async def fetch_hourly(self, lat: float, lon: float, units: str,
                           max_entries: int = MAX_HOURLY_ENTRIES) -> HourlyForecast:
        """현재 시각 이후의 시간별 예보를 max_entries개까지 가져온다."""
        temp_unit, wind_unit, temp_label, wind_label = _unit_params(units)
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m",
            "hourly": "temperature_2m,wind_speed_10m,wind_direction_10m",
            "temperature_unit": temp_unit,
            "wind_speed_unit": wind_unit,
            "timezone": "auto",
            "forecast_days": 2,
        }
        result = await self._get_json(params)
        try:
            data = parse_hourly(result, self._city, temp_label, wind_label, max_entries)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise WeatherFetchError(f"시간별 예보 응답 파싱 실패: {e!r}") from e

        logger.info("날씨 갱신(시간별): %s %d개", data.city, len(data.entries))
        return data

    async def _get_json(self, params: dict) -> dict:
        """API를 호출하여 JSON을 반환한다. 실패는 WeatherFetchError로 바꾼다."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(self.API_URL, params=params,
                                       timeout=aiohttp.ClientTimeout(total=self._timeout)) as resp:
                    resp.raise_for_status()
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WeatherFetchError(f"Open-Meteo API 호출 실패: {e!r}") from e


def parse_current(result: dict, city: str, temp_label: str, wind_label: str) -> CurrentWeather:
    """Open-Meteo 응답 → CurrentWeather."""
    current = result["current"]
    daily = result["daily"]
    code = int(current["weather_code"])
    return CurrentWeather(
        city=city,
        temp=float(current["temperature_2m"]),
        temp_unit=temp_label,
        description=_WMO_DESCRIPTIONS.get(code, f"WMO {code}"),
        wind_speed=float(current["wind_speed_10m"]),
        wind_unit=wind_label,
        wind_dir=compass_direction(float(current["wind_direction_10m"])),
        temp_high=float(daily["temperature_2m_max"][0]),
        temp_low=float(daily["temperature_2m_min"][0]),
    )


def parse_hourly(result: dict, city: str, temp_label: str, wind_label: str,
                 max_entries: int = MAX_HOURLY_ENTRIES) -> HourlyForecast:
    """Open-Meteo 응답 → HourlyForecast. 현재 시각 이후 항목만 사용한다."""
    hourly = result["hourly"]
    # ISO 8601 로컬 시각 문자열 ("2026-10-19T14:00")은 사전순 비교가 시간순과 같다
    now_iso = result["current"]["time"]

    entries = []
    for i, iso in enumerate(hourly["time"]):
        if iso <= now_iso:
            continue
        entries.append(HourlyEntry(
            time=iso[11:16],
            temp=float(hourly["temperature_2m"][i]),
            wind_speed=float(hourly["wind_speed_10m"][i]),
            wind_dir=compass_direction(float(hourly["wind_direction_10m"][i])),
        ))
        if len(entries) >= max_entries:
            break

    return HourlyForecast(city=city, entries=tuple(entries),
                          temp_unit=temp_label, wind_unit=wind_label)


def create_weather_provider(config: dict) -> OpenMeteoWeatherProvider:
    """weather 설정 섹션으로 provider를 만든다."""
    return OpenMeteoWeatherProvider(
        city=config.get("city", ""),
        timeout_sec=config.get("timeout_sec", 10),
    )
