"""제스처/조도 틱과 날씨 루프의 상호작용 테스트."""

import asyncio
import logging
import threading
from datetime import datetime

import pytest

from content.weather import WeatherFetchError
from ports import COLOR_BACKGROUND, COLOR_FOREGROUND
from state import Gesture, Transition, ViewKind

from conftest import settle


async def _wake(scheduler, sensor, light=2500):
    sensor.light = light
    result = await scheduler.tick()
    await settle()
    return result


@pytest.mark.asyncio
async def test_wake_fetches_current_and_renders(scheduler, sensor, display, weather):
    assert await _wake(scheduler, sensor) is Transition.WAKE

    assert weather.calls == ["current"]
    time_text, body = display.texts(COLOR_FOREGROUND)
    assert time_text == "10:30"
    assert "Boulder" in body
    assert "72.4F" in body
    assert "Clear" in body
    assert display.flushes == 1
    assert scheduler.weather_loop_active
    scheduler.stop()


@pytest.mark.asyncio
async def test_light_below_wake_threshold_does_nothing(scheduler, sensor, display, weather):
    sensor.light = 1999
    assert await scheduler.tick() is Transition.NONE
    await settle()
    assert weather.calls == []
    assert display.calls == []
    assert not scheduler.weather_loop_active


@pytest.mark.asyncio
async def test_swipe_switches_view_and_replaces_body(scheduler, sensor, display, weather):
    await _wake(scheduler, sensor)
    current_body = display.texts(COLOR_FOREGROUND)[1]
    loop_before = scheduler.generation
    display.calls.clear()

    sensor.gestures.append(Gesture.RIGHT)
    assert await scheduler.tick() is Transition.VIEW_CHANGED
    await settle()

    assert weather.calls == ["current", "hourly"]
    assert scheduler.generation > loop_before
    # 이전 본문을 지운 뒤 새 본문을 그린다. 시간은 그대로다.
    erased = display.texts(COLOR_BACKGROUND)
    drawn = display.texts(COLOR_FOREGROUND)
    assert erased == [current_body]
    assert len(drawn) == 1 and drawn[0].startswith("Boulder\n11h")
    assert display.calls[0][4] == COLOR_BACKGROUND
    scheduler.stop()


@pytest.mark.asyncio
async def test_full_scenario(scheduler, sensor, display, weather):
    await _wake(scheduler, sensor)
    assert "72.4F" in scheduler._cache.pane.body_text

    sensor.gestures.append(Gesture.RIGHT)
    await scheduler.tick()
    await settle()
    assert scheduler._machine.state.view is ViewKind.HOURLY
    assert scheduler._cache.pane.body_text.startswith("Boulder\n11h 74F")

    sensor.light = 1000
    assert await scheduler.tick() is Transition.SLEEP
    await settle()
    assert scheduler._cache.pane.time_text is None
    assert scheduler._cache.pane.body_text is None
    assert not scheduler.weather_loop_active
    assert weather.calls == ["current", "hourly"]


@pytest.mark.asyncio
async def test_sleep_erases_pane_and_flushes(scheduler, sensor, display):
    await _wake(scheduler, sensor)
    flushes = display.flushes
    display.calls.clear()

    sensor.light = 1500
    await scheduler.tick()

    assert len(display.texts(COLOR_BACKGROUND)) == 2
    assert display.texts(COLOR_FOREGROUND) == []
    assert display.flushes == flushes + 1


@pytest.mark.asyncio
async def test_no_draws_while_asleep(scheduler, sensor, display, clock_now):
    sensor.light = 0
    for minute in range(31, 35):
        clock_now["now"] = datetime(2026, 10, 19, 10, minute)
        await scheduler.tick()
    assert display.calls == []
    assert display.flushes == 0


@pytest.mark.asyncio
async def test_tick_refreshes_time_without_touching_body(scheduler, sensor, display, clock_now):
    await _wake(scheduler, sensor)
    display.calls.clear()

    assert await scheduler.tick() is Transition.NONE
    assert display.calls == []

    clock_now["now"] = datetime(2026, 10, 19, 10, 31)
    await scheduler.tick()
    assert display.texts(COLOR_BACKGROUND) == ["10:30"]
    assert display.texts(COLOR_FOREGROUND) == ["10:31"]
    scheduler.stop()


@pytest.mark.asyncio
async def test_sensor_error_skips_tick(scheduler, sensor, weather, caplog):
    sensor.light = 2500
    sensor.fail = True
    sensor.gestures.append(Gesture.RIGHT)

    with caplog.at_level(logging.WARNING):
        assert await scheduler.tick() is Transition.NONE
    assert "조도 읽기 실패" in caplog.text
    assert scheduler._machine.state.on is False
    # 읽지 못한 틱에서는 제스처도 소비하지 않는다
    assert sensor.gestures == [Gesture.RIGHT]

    sensor.fail = False
    assert await scheduler.tick() is Transition.WAKE
    scheduler.stop()


@pytest.mark.asyncio
async def test_fetch_error_keeps_previous_pane(scheduler, sensor, display, weather):
    await _wake(scheduler, sensor)
    pane = scheduler._cache.pane
    display.calls.clear()

    weather.error = WeatherFetchError("offline")
    assert await scheduler.refresh_weather(ViewKind.CURRENT) is False
    assert display.calls == []
    assert scheduler._cache.pane == pane
    assert scheduler.weather_loop_active
    scheduler.stop()


@pytest.mark.asyncio
async def test_stale_fetch_result_is_dropped(scheduler, sensor, display, weather):
    weather.gate = asyncio.Event()
    await _wake(scheduler, sensor)
    first_task = scheduler._weather_task
    stale_generation = scheduler.generation

    sensor.gestures.append(Gesture.RIGHT)
    await scheduler.tick()
    await settle()
    assert first_task.cancelled()

    # 지난 세대의 CURRENT 요청이 뒤늦게 끝나도 그리지 않는다
    weather.gate.set()
    assert await scheduler.refresh_weather(ViewKind.CURRENT, stale_generation) is False
    await settle()

    drawn = display.texts(COLOR_FOREGROUND)
    assert all("Clear" not in text for text in drawn)
    assert scheduler._cache.pane.body_text.startswith("Boulder\n11h")
    scheduler.stop()


@pytest.mark.asyncio
async def test_result_dropped_when_asleep(scheduler, sensor, display, weather):
    weather.gate = asyncio.Event()
    await _wake(scheduler, sensor)
    sensor.light = 0
    await scheduler.tick()
    display.calls.clear()

    weather.gate.set()
    assert await scheduler.refresh_weather(ViewKind.CURRENT) is False
    assert display.calls == []


@pytest.mark.asyncio
async def test_weather_loop_repeats_on_interval(scheduler, sensor, weather):
    scheduler._weather_interval = 0.01
    await _wake(scheduler, sensor)
    await asyncio.sleep(0.05)
    assert weather.calls.count("current") >= 2
    scheduler.stop()


@pytest.mark.asyncio
async def test_run_until_stopped(scheduler, sensor, weather):
    sensor.light = 2500
    task = asyncio.create_task(scheduler.run())
    await asyncio.sleep(0.05)
    assert scheduler._machine.state.on is True
    assert weather.calls[0] == "current"

    scheduler.stop()
    await asyncio.wait_for(task, timeout=1)
    assert not scheduler.weather_loop_active


@pytest.mark.asyncio
async def test_failed_sleep_flush_is_resent_on_later_tick(scheduler, sensor, display):
    await _wake(scheduler, sensor)
    display.fail_flushes = 1

    sensor.light = 0
    await scheduler.tick()
    assert display.dirty
    flushes = display.flushes

    # 잠든 뒤에는 아무것도 그리지 않지만, 지운 프레임은 다음 틱에 다시 보낸다
    await scheduler.tick()
    assert not display.dirty
    assert display.flushes == flushes + 1

    await scheduler.tick()
    assert display.flushes == flushes + 1


@pytest.mark.asyncio
async def test_gesture_read_runs_off_event_loop_thread(scheduler, sensor):
    sensor.light = 2500
    await scheduler.tick()
    assert sensor.gesture_threads
    assert threading.current_thread() not in sensor.gesture_threads
    scheduler.stop()
