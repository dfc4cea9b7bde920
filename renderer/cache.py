"""렌더 캐시 모듈 — 마지막으로 그린 문자열을 기억하고 바뀐 패널만 다시 그린다."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ports import COLOR_BACKGROUND, COLOR_FOREGROUND, DisplayPort
from renderer.layout import BODY_SLOT, TIME_SLOT, PaneSlot

logger = logging.getLogger(__name__)


@dataclass
class RenderedPane:
    """실제로 화면에 그려진 마지막 문자열."""
    time_text: str | None = None
    body_text: str | None = None


class RenderCache:
    """시간/본문 패널을 독립적으로 비교하여 최소한의 draw만 호출한다.

    바뀐 패널은 이전 문자열을 배경색으로 다시 그려 지운 뒤 새 문자열을 그린다.
    전체 화면을 지우지 않으므로 깜빡임과 불필요한 전송이 없다.
    """

    def __init__(
        self,
        display: DisplayPort,
        is_awake: Callable[[], bool],
        time_slot: PaneSlot = TIME_SLOT,
        body_slot: PaneSlot = BODY_SLOT,
        foreground: tuple = COLOR_FOREGROUND,
        background: tuple = COLOR_BACKGROUND,
    ):
        self._display = display
        self._is_awake = is_awake
        self._time_slot = time_slot
        self._body_slot = body_slot
        self._fg = foreground
        self._bg = background
        self._pane = RenderedPane()

    @property
    def pane(self) -> RenderedPane:
        return RenderedPane(self._pane.time_text, self._pane.body_text)

    def apply(self, time_text: str, body_text: str) -> int:
        """후보 문자열을 반영한다. 호출한 draw 횟수를 반환한다.

        화면이 꺼져 있으면 아무것도 그리지 않는다.
        """
        if not self._is_awake():
            return 0

        draws = 0
        if time_text != self._pane.time_text:
            draws += self._replace(self._time_slot, self._pane.time_text, time_text)
            self._pane.time_text = time_text
        if body_text != self._pane.body_text:
            draws += self._replace(self._body_slot, self._pane.body_text, body_text)
            self._pane.body_text = body_text
        return draws

    def clear(self) -> int:
        """저장된 문자열을 지우고 캐시를 비운다 (취침 전환 시 호출)."""
        draws = 0
        if self._pane.time_text is not None:
            self._erase(self._time_slot, self._pane.time_text)
            draws += 1
        self._pane.time_text = None
        if self._pane.body_text is not None:
            self._erase(self._body_slot, self._pane.body_text)
            draws += 1
        self._pane.body_text = None
        logger.debug("렌더 캐시 초기화 (draw %d회)", draws)
        return draws

    def _replace(self, slot: PaneSlot, old: str | None, new: str) -> int:
        draws = 0
        if old is not None:
            self._erase(slot, old)
            draws += 1
        self._display.draw_text(slot.row, slot.col, new, slot.size, self._fg)
        return draws + 1

    def _erase(self, slot: PaneSlot, text: str) -> None:
        self._display.draw_text(slot.row, slot.col, text, slot.size, self._bg)
