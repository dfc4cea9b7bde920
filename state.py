"""디스플레이 상태 머신 — 조도 히스테리시스로 켜짐/꺼짐, 스와이프로 뷰 전환."""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Gesture(Enum):
    """한 틱에 소비되는 제스처. 좌/우 외의 방향은 NONE으로 취급한다."""
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"


class ViewKind(Enum):
    """표시할 날씨 데이터 종류."""
    CURRENT = "current"
    HOURLY = "hourly"


# 스와이프 순환 순서. 뷰를 추가하면 여기에만 넣으면 된다.
VIEW_ORDER: tuple[ViewKind, ...] = (ViewKind.CURRENT, ViewKind.HOURLY)

_NEXT_VIEW = {v: VIEW_ORDER[(i + 1) % len(VIEW_ORDER)] for i, v in enumerate(VIEW_ORDER)}
_PREV_VIEW = {v: VIEW_ORDER[(i - 1) % len(VIEW_ORDER)] for i, v in enumerate(VIEW_ORDER)}


def next_view(view: ViewKind) -> ViewKind:
    return _NEXT_VIEW[view]


def prev_view(view: ViewKind) -> ViewKind:
    return _PREV_VIEW[view]


class Transition(Enum):
    """transition() 결과 — 호출자가 부수 효과를 결정하는 데 쓴다."""
    NONE = "none"
    WAKE = "wake"
    SLEEP = "sleep"
    VIEW_CHANGED = "view_changed"


@dataclass
class DisplayState:
    """디스플레이 켜짐 여부와 현재 뷰."""
    on: bool = False
    view: ViewKind = ViewKind.CURRENT


class DisplayStateMachine:
    """Asleep / Awake(view) 두 상태를 관리한다.

    깨어나는 임계값(high)과 잠드는 임계값(low)을 분리하여
    경계값 근처의 센서 노이즈로 화면이 깜빡이지 않게 한다.
    """

    def __init__(self, high_threshold: int, low_threshold: int):
        if high_threshold <= low_threshold:
            raise ValueError(
                f"high_threshold({high_threshold})는 low_threshold({low_threshold})보다 커야 합니다"
            )
        self._high = high_threshold
        self._low = low_threshold
        self._state = DisplayState()

    @property
    def state(self) -> DisplayState:
        return self._state

    @property
    def is_awake(self) -> bool:
        return self._state.on

    def transition(self, light: int | None, gesture: Gesture = Gesture.NONE) -> Transition:
        """틱마다 한 번 호출한다. 조도 검사가 제스처 검사보다 먼저다.

        Args:
            light: 조도 값. None이면 이번 틱 센서 읽기 실패 (상태 유지)
            gesture: 이번 틱에 소비한 제스처
        """
        if light is None:
            return Transition.NONE

        state = self._state
        if not state.on:
            if light >= self._high:
                state.on = True
                state.view = ViewKind.CURRENT
                logger.info("기상: 조도 %d >= %d", light, self._high)
                return Transition.WAKE
            return Transition.NONE

        if light <= self._low:
            state.on = False
            logger.info("취침: 조도 %d <= %d", light, self._low)
            return Transition.SLEEP

        if gesture is Gesture.LEFT:
            state.view = prev_view(state.view)
        elif gesture is Gesture.RIGHT:
            state.view = next_view(state.view)
        else:
            return Transition.NONE

        logger.info("뷰 전환 (%s): %s", gesture.value, state.view.value)
        return Transition.VIEW_CHANGED
