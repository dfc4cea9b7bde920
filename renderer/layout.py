"""화면 레이아웃 모듈 — 패널 슬롯 위치와 격자→픽셀 변환."""

from dataclasses import dataclass

WIDTH = 64
HEIGHT = 64

# 격자 한 칸 크기 (px)
ROW_HEIGHT = 8
COL_WIDTH = 4


@dataclass(frozen=True)
class PaneSlot:
    """텍스트 패널의 격자 위치와 글자 크기."""
    row: int
    col: int
    size: int


# 시간: 좌상단, 9px
TIME_SLOT = PaneSlot(row=0, col=0, size=9)
# 본문: 시간 아래, 7px 여러 줄
BODY_SLOT = PaneSlot(row=2, col=0, size=7)


def to_pixels(row: int, col: int) -> tuple[int, int]:
    """격자 (row, col)을 캔버스 좌표 (x, y)로 변환한다."""
    return col * COL_WIDTH, row * ROW_HEIGHT


def line_height(size: int) -> int:
    """여러 줄 텍스트의 줄 간격. 행 높이 단위로 올림한다."""
    rows = -(-(size + 1) // ROW_HEIGHT)
    return rows * ROW_HEIGHT
