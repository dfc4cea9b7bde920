"""외부 협력자 인터페이스 — 센서·디스플레이·날씨 포트 정의."""

from typing import Protocol, runtime_checkable

from state import Gesture

# 색상 (RGBA)
COLOR_FOREGROUND = (255, 255, 255, 255)
COLOR_BACKGROUND = (0, 0, 0, 255)


@runtime_checkable
class SensorPort(Protocol):
    """조도·제스처 센서. 읽기 실패 시 SensorReadError를 던진다."""

    def read_ambient_light(self) -> int:
        ...

    def gesture_available(self) -> bool:
        ...

    def read_gesture(self) -> Gesture:
        """대기 중인 제스처 하나를 소비하여 반환한다."""
        ...


@runtime_checkable
class DisplayPort(Protocol):
    """텍스트 출력 디스플레이.

    draw_text/clear_screen은 프레임 버퍼에만 그리고, flush()가 실제 패널로 전송한다.
    """

    def draw_text(self, row: int, col: int, text: str, size: int, color: tuple) -> None:
        ...

    def clear_screen(self, color: tuple = COLOR_BACKGROUND) -> None:
        ...

    async def flush(self) -> bool:
        ...


@runtime_checkable
class WeatherPort(Protocol):
    """날씨 서비스. 실패 시 WeatherFetchError를 던진다."""

    async def fetch_current(self, lat: float, lon: float, units: str):
        ...

    async def fetch_hourly(self, lat: float, lon: float, units: str, max_entries: int = 4):
        ...
