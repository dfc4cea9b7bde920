"""APDS-9960 조도·제스처 센서 모듈 — Linux I2C 버스에서 Adafruit 드라이버로 읽는다."""

import logging

from state import Gesture

logger = logging.getLogger(__name__)

# adafruit_apds9960 gesture() 반환 코드
_GESTURE_CODES = {
    0x03: Gesture.LEFT,
    0x04: Gesture.RIGHT,
}


class SensorInitError(Exception):
    """센서 초기화 실패. 센서 없이는 동작할 수 없으므로 치명적이다."""


class SensorReadError(Exception):
    """일시적인 센서 읽기 실패. 해당 틱만 건너뛴다."""


class Apds9960Sensor:
    """APDS-9960 조도/제스처 센서.

    gesture() 드라이버 호출은 대기 중인 제스처를 소비하므로,
    gesture_available()에서 읽은 결과를 read_gesture()까지 보관한다.
    """

    def __init__(self, device, i2c=None):
        self._dev = device
        self._i2c = i2c
        self._pending = Gesture.NONE

    @classmethod
    def open(cls, bus: int = 1) -> "Apds9960Sensor":
        """I2C 버스에서 센서를 열고 조도·근접·제스처 기능을 켠다."""
        try:
            from adafruit_extended_bus import ExtendedI2C as I2C
            from adafruit_apds9960.apds9960 import APDS9960
        except ImportError as e:
            raise SensorInitError(f"센서 드라이버 패키지 없음: {e}") from e

        i2c = None
        try:
            i2c = I2C(bus)
            dev = APDS9960(i2c)
            dev.enable_proximity = True
            dev.enable_gesture = True
            dev.enable_color = True
        except (OSError, ValueError, RuntimeError) as e:
            if i2c is not None:
                i2c.deinit()
            raise SensorInitError(f"APDS-9960 초기화 실패 (bus {bus}): {e}") from e

        logger.info("APDS-9960 센서 열림 (I2C bus %d)", bus)
        return cls(dev, i2c)

    def read_ambient_light(self) -> int:
        """투명(clear) 채널 값을 조도로 반환한다."""
        try:
            _r, _g, _b, clear = self._dev.color_data
        except (OSError, ValueError) as e:
            raise SensorReadError(f"조도 읽기 실패: {e}") from e
        logger.debug("Light: %d", clear)
        return int(clear)

    def gesture_available(self) -> bool:
        if self._pending is not Gesture.NONE:
            return True
        try:
            code = self._dev.gesture()
        except (OSError, ValueError) as e:
            raise SensorReadError(f"제스처 읽기 실패: {e}") from e
        self._pending = _GESTURE_CODES.get(code, Gesture.NONE)
        return self._pending is not Gesture.NONE

    def read_gesture(self) -> Gesture:
        gesture = self._pending
        self._pending = Gesture.NONE
        if gesture is not Gesture.NONE:
            logger.debug("Gesture: %s", gesture.value)
        return gesture

    def close(self) -> None:
        if self._i2c is not None:
            self._i2c.deinit()
            self._i2c = None
            logger.info("APDS-9960 센서 닫힘")
