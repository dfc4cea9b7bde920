"""공용 테스트 픽스처 — 센서·디스플레이·날씨 포트의 가짜 구현."""

import asyncio
import threading
from datetime import datetime

import pytest

from content.clock import ClockContent
from content.weather import CurrentWeather, HourlyEntry, HourlyForecast
from ports import COLOR_BACKGROUND
from renderer.cache import RenderCache
from scheduler import PollScheduler
from sensor.apds9960 import SensorReadError
from state import DisplayStateMachine

HIGH = 2000
LOW = 1500


class FakeSensor:
    def __init__(self, light: int = 0):
        self.light = light
        self.gestures = []
        self.fail = False
        self.gesture_threads = []

    def read_ambient_light(self) -> int:
        if self.fail:
            raise SensorReadError("i2c timeout")
        return self.light

    def gesture_available(self) -> bool:
        self.gesture_threads.append(threading.current_thread())
        return bool(self.gestures)

    def read_gesture(self):
        return self.gestures.pop(0)


class FakeDisplay:
    """draw 호출을 (text, color) 순서대로 기록한다.

    flushes는 실제로 보낸 프레임 수다. 바뀐 것이 없으면 flush()는 아무것도 보내지 않는다.
    fail_flushes만큼은 전송이 실패하고 프레임은 그대로 남는다.
    """

    def __init__(self):
        self.calls = []
        self.flushes = 0
        self.flush_attempts = 0
        self.fail_flushes = 0
        self.dirty = False
        self.fail = False

    def draw_text(self, row, col, text, size, color):
        if self.fail:
            raise OSError("bus error")
        self.calls.append((row, col, text, size, color))
        self.dirty = True

    def clear_screen(self, color=COLOR_BACKGROUND):
        self.calls.append(("clear", color))
        self.dirty = True

    async def flush(self) -> bool:
        self.flush_attempts += 1
        if not self.dirty:
            return True
        if self.fail_flushes:
            self.fail_flushes -= 1
            return False
        self.dirty = False
        self.flushes += 1
        return True

    def texts(self, color):
        return [c[2] for c in self.calls if len(c) == 5 and c[4] == color]


class FakeWeather:
    """gate를 설정하면 set()될 때까지 가져오기가 멈춘다."""

    def __init__(self, current=None, hourly=None):
        self.current = current
        self.hourly = hourly
        self.error = None
        self.gate = None
        self.calls = []

    async def fetch_current(self, lat, lon, units):
        self.calls.append("current")
        return await self._result(self.current)

    async def fetch_hourly(self, lat, lon, units, max_entries=4):
        self.calls.append("hourly")
        return await self._result(self.hourly)

    async def _result(self, value):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return value


async def settle(rounds: int = 5) -> None:
    """대기 중인 태스크가 다음 await 지점까지 진행하도록 양보한다."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def boulder_current():
    return CurrentWeather(
        city="Boulder", temp=72.4, temp_unit="F", description="Clear",
        wind_speed=5.1, wind_unit="mph", wind_dir="NW",
        temp_high=80.0, temp_low=61.0,
    )


@pytest.fixture
def boulder_hourly():
    return HourlyForecast(
        city="Boulder",
        entries=(
            HourlyEntry(time="11:00", temp=74.0, wind_speed=5.0, wind_dir="NW"),
            HourlyEntry(time="12:00", temp=76.5, wind_speed=6.2, wind_dir="W"),
        ),
        temp_unit="F",
        wind_unit="mph",
    )


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def display():
    return FakeDisplay()


@pytest.fixture
def weather(boulder_current, boulder_hourly):
    return FakeWeather(current=boulder_current, hourly=boulder_hourly)


@pytest.fixture
def clock_now():
    """스케줄러가 쓰는 현재 시각. 테스트에서 값을 바꿔 시간 경과를 흉내 낸다."""
    return {"now": datetime(2026, 10, 19, 10, 30)}


@pytest.fixture
def machine():
    return DisplayStateMachine(high_threshold=HIGH, low_threshold=LOW)


@pytest.fixture
def scheduler(sensor, display, weather, machine, clock_now):
    cache = RenderCache(display, is_awake=lambda: machine.is_awake)
    return PollScheduler(
        sensor, display, weather, machine, cache, ClockContent(),
        lat=40.015, lon=-105.27, units="imperial",
        gesture_interval_sec=0.01, weather_interval_sec=3600,
        now=lambda: clock_now["now"],
    )
