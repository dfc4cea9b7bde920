"""폴링 스케줄러 모듈 — 제스처/조도 폴링 루프와 날씨 갱신 루프를 관리한다."""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime

from content.clock import ClockContent
from content.views import format_body
from content.weather import MAX_HOURLY_ENTRIES, WeatherFetchError
from ports import DisplayPort, SensorPort, WeatherPort
from renderer.cache import RenderCache
from sensor.apds9960 import SensorReadError
from state import DisplayStateMachine, Gesture, Transition, ViewKind

logger = logging.getLogger(__name__)


class PollScheduler:
    """두 개의 독립된 주기 작업을 하나의 이벤트 루프에서 돌린다.

    - 제스처/조도 루프: 고정 간격으로 센서를 읽어 상태 머신에 넣는다.
    - 날씨 루프: 재시작 가능한 태스크. 시작 즉시 가져와 그리고, 이후 고정 간격으로 반복한다.
      기상·뷰 전환 시 취소 후 재시작하고, 취침 시 취소한다.

    날씨 루프를 시작할 때마다 세대(generation) 번호가 바뀌며,
    세대나 뷰가 달라진 가져오기 결과는 그리지 않는다.
    """

    def __init__(
        self,
        sensor: SensorPort,
        display: DisplayPort,
        weather: WeatherPort,
        machine: DisplayStateMachine,
        cache: RenderCache,
        clock: ClockContent,
        *,
        lat: float,
        lon: float,
        units: str = "metric",
        max_hourly_entries: int = MAX_HOURLY_ENTRIES,
        gesture_interval_sec: float = 0.2,
        weather_interval_sec: float = 20.0,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._sensor = sensor
        self._display = display
        self._weather = weather
        self._machine = machine
        self._cache = cache
        self._clock = clock
        self._lat = lat
        self._lon = lon
        self._units = units
        self._max_hourly = max_hourly_entries
        self._gesture_interval = gesture_interval_sec
        self._weather_interval = weather_interval_sec
        self._now = now

        self._weather_task: asyncio.Task | None = None
        self._generation = 0
        self._body: str | None = None
        self._running = False

    @property
    def weather_loop_active(self) -> bool:
        return self._weather_task is not None and not self._weather_task.done()

    @property
    def generation(self) -> int:
        return self._generation

    # ── 제스처/조도 루프 ──

    async def run(self) -> None:
        """stop()이 호출될 때까지 제스처/조도 루프를 돌린다."""
        self._running = True
        logger.info("폴링 시작 (제스처 %.0fms, 날씨 %.0fs)",
                    self._gesture_interval * 1000, self._weather_interval)
        try:
            while self._running:
                tick_start = time.monotonic()
                try:
                    await self.tick()
                except Exception:
                    logger.exception("폴링 틱 처리 중 오류")

                # 틱 간격 유지
                elapsed = time.monotonic() - tick_start
                await asyncio.sleep(max(0.0, self._gesture_interval - elapsed))
        finally:
            self._cancel_weather_loop()
            logger.info("폴링 종료")

    def stop(self) -> None:
        """두 루프를 모두 멈춘다."""
        self._running = False
        self._cancel_weather_loop()

    async def tick(self) -> Transition:
        """폴링 한 번: 조도 → 제스처 → 상태 전환 → 부수 효과."""
        light = self._read_light()
        gesture = Gesture.NONE
        if light is not None:
            # 드라이버의 gesture()는 제스처 진행 중 블로킹되므로 스레드에서 읽는다
            gesture = await asyncio.to_thread(self._read_gesture)

        result = self._machine.transition(light, gesture)

        if result is Transition.WAKE or result is Transition.VIEW_CHANGED:
            self._restart_weather_loop()
        elif result is Transition.SLEEP:
            self._cancel_weather_loop()
            self._body = None
            self._cache.clear()
        elif self._machine.is_awake and self._body is not None:
            # 시간 패널만 갱신 (본문이 같으면 그리지 않는다)
            self._cache.apply(self._clock.format_time(self._now()), self._body)

        # 바뀐 프레임이 없으면 아무것도 보내지 않는다. 이전에 실패한 전송도 여기서 다시 보낸다.
        if not await self._display.flush():
            logger.debug("프레임 전송 실패, 다음 틱에 재시도")
        return result

    def _read_light(self) -> int | None:
        try:
            return self._sensor.read_ambient_light()
        except SensorReadError as e:
            logger.warning("조도 읽기 실패, 이번 틱 건너뜀: %s", e)
            return None

    def _read_gesture(self) -> Gesture:
        try:
            if not self._sensor.gesture_available():
                return Gesture.NONE
            return self._sensor.read_gesture()
        except SensorReadError as e:
            logger.warning("제스처 읽기 실패: %s", e)
            return Gesture.NONE

    # ── 날씨 루프 ──

    def _restart_weather_loop(self) -> None:
        """진행 중인 날씨 루프를 취소하고 즉시 가져오기부터 다시 시작한다."""
        self._cancel_weather_loop()
        self._weather_task = asyncio.create_task(self._weather_loop(self._generation))

    def _cancel_weather_loop(self) -> None:
        self._generation += 1
        if self._weather_task is not None:
            self._weather_task.cancel()
            self._weather_task = None

    async def _weather_loop(self, generation: int) -> None:
        while True:
            try:
                await self.refresh_weather(self._machine.state.view, generation)
            except Exception:
                logger.exception("날씨 갱신 중 오류")
            await asyncio.sleep(self._weather_interval)

    async def refresh_weather(self, view: ViewKind, generation: int | None = None) -> bool:
        """view의 날씨를 가져와 그린다. 그렸으면 True.

        가져오는 동안 세대나 뷰가 바뀌었거나 화면이 꺼졌으면 결과를 버린다.
        실패하면 이전 화면을 그대로 두고 다음 주기에 다시 시도한다.
        """
        if generation is None:
            generation = self._generation

        try:
            data = await self._fetch(view)
        except WeatherFetchError as e:
            logger.warning("날씨 가져오기 실패 (%s): %s", view.value, e)
            return False

        state = self._machine.state
        if generation != self._generation or not state.on or state.view is not view:
            logger.debug("지난 요청의 날씨 결과 무시 (%s)", view.value)
            return False

        body = format_body(view, data)
        self._body = body
        if self._cache.apply(self._clock.format_time(self._now()), body):
            await self._display.flush()
        return True

    async def _fetch(self, view: ViewKind):
        if view is ViewKind.CURRENT:
            return await self._weather.fetch_current(self._lat, self._lon, self._units)
        if view is ViewKind.HOURLY:
            return await self._weather.fetch_hourly(
                self._lat, self._lon, self._units, self._max_hourly,
            )
        raise ValueError(f"가져올 수 없는 뷰: {view}")
