"""메인 루프 — 조도·제스처로 제어하는 BLE LED 날씨 디스플레이 실행."""

import asyncio
import logging
import sys

from bleak.exc import BleakError

from config import ConfigError, load_config
from ble.display import BleLedDisplay, find_display_address
from content.clock import ClockContent
from content.weather import create_weather_provider
from ports import COLOR_BACKGROUND
from renderer.cache import RenderCache
from scheduler import PollScheduler
from sensor.apds9960 import Apds9960Sensor, SensorInitError
from state import DisplayStateMachine

logger = logging.getLogger("smartmirror")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(message)s",
    )
    logging.getLogger("bleak").setLevel(logging.WARNING)


def build_scheduler(config: dict, sensor, display) -> PollScheduler:
    """설정에서 상태 머신·렌더 캐시·날씨 provider를 만들어 스케줄러로 묶는다."""
    sensor_cfg = config["sensor"]
    weather_cfg = config["weather"]

    machine = DisplayStateMachine(
        high_threshold=sensor_cfg["light_threshold_high"],
        low_threshold=sensor_cfg["light_threshold_low"],
    )
    cache = RenderCache(display, is_awake=lambda: machine.is_awake)
    return PollScheduler(
        sensor, display, create_weather_provider(weather_cfg), machine, cache,
        ClockContent(format_24h=config["clock"]["format_24h"]),
        lat=weather_cfg["lat"],
        lon=weather_cfg["lon"],
        units=weather_cfg["units"],
        max_hourly_entries=weather_cfg["max_hourly_entries"],
        gesture_interval_sec=sensor_cfg["gesture_poll_ms"] / 1000,
        weather_interval_sec=weather_cfg["update_interval_sec"],
    )


async def _run_display(config: dict, sensor, address: str) -> None:
    ble_cfg = config["ble"]
    async with BleLedDisplay(address, reconnect_interval=ble_cfg["reconnect_interval_sec"]) as display:
        await asyncio.sleep(1)
        await display.set_brightness(config["display"]["brightness"])
        display.clear_screen(COLOR_BACKGROUND)
        await display.flush()

        scheduler = build_scheduler(config, sensor, display)
        logger.info("디스플레이 시작 (조도 임계값 %d/%d)",
                    config["sensor"]["light_threshold_high"],
                    config["sensor"]["light_threshold_low"])
        try:
            await scheduler.run()
        finally:
            scheduler.stop()


async def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        _setup_logging("INFO")
        logger.error("설정 오류: %s", e)
        return 1

    _setup_logging(config["logging"].get("level", "INFO"))

    # 센서 없이는 동작할 수 없다
    try:
        sensor = Apds9960Sensor.open(bus=config["sensor"]["i2c_bus"])
    except SensorInitError as e:
        logger.error("센서 초기화 실패: %s", e)
        return 1

    try:
        address = await find_display_address(
            name_prefix=config["ble"]["device_name_prefix"],
            timeout=config["ble"]["scan_timeout_sec"],
        )
        if address is None:
            logger.error("디스플레이를 찾지 못했습니다.")
            return 1
        await _run_display(config, sensor, address)
    except BleakError as e:
        logger.error("디스플레이 연결 실패: %s", e)
        return 1
    finally:
        sensor.close()

    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.info("종료")


if __name__ == "__main__":
    run()
