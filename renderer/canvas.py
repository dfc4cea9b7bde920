"""64x64 Pillow 캔버스 관리 모듈 — 격자 위치에 텍스트를 그린다."""

from PIL import Image

from .layout import HEIGHT, WIDTH, line_height, to_pixels
from .text import fit_line, render_text


class Canvas:
    """64x64 RGBA 프레임 버퍼."""

    def __init__(self, color: tuple = (0, 0, 0, 255)):
        self._image = Image.new("RGBA", (WIDTH, HEIGHT), color)

    @property
    def image(self) -> Image.Image:
        return self._image

    def clear(self, color: tuple = (0, 0, 0, 255)) -> None:
        """캔버스를 지정 색상으로 초기화한다."""
        self._image = Image.new("RGBA", (WIDTH, HEIGHT), color)

    def draw_text(self, row: int, col: int, text: str, size: int, color: tuple) -> None:
        """격자 (row, col)부터 텍스트를 줄 단위로 그린다.

        패널 폭을 넘는 줄은 끝을 잘라 글자가 중간에서 잘리지 않게 한다.
        같은 문자열을 배경색으로 다시 그리면 정확히 지워진다.
        """
        x, y = to_pixels(row, col)
        step = line_height(size)
        for i, line in enumerate(text.split("\n")):
            line = fit_line(line, size, WIDTH - x)
            if not line:
                continue
            layer = render_text(line, font_size=size, color=color)
            self.paste(layer, (x, y + i * step))

    def paste(self, layer: Image.Image, position: tuple = (0, 0)) -> None:
        """레이어를 캔버스 위에 합성한다 (알파 블렌딩)."""
        if layer.mode != "RGBA":
            layer = layer.convert("RGBA")
        self._image = Image.alpha_composite(self._image, _place(layer, position))

    def to_rgb(self) -> Image.Image:
        """RGB 모드로 변환하여 반환한다 (BLE 전송용)."""
        return self._image.convert("RGB")


def _place(layer: Image.Image, position: tuple) -> Image.Image:
    """레이어를 64x64 캔버스 크기에 맞춰 지정 위치에 배치한다. 벗어난 부분은 잘린다."""
    if layer.size == (WIDTH, HEIGHT) and position == (0, 0):
        return layer
    result = Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 0))
    result.paste(layer, position)
    return result
