"""텍스트 렌더링 모듈 — Galmuri 픽셀 폰트로 LED 매트릭스에 선명하게 렌더링.

안티앨리어싱 없이 1비트 렌더링을 사용한다.
"""

import os
import sys
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

# Galmuri 픽셀 폰트 경로
_FONT_DIR = Path(__file__).parent.parent / "assets" / "fonts"

# 글자 크기(px) → Galmuri 폰트
_SIZE_FONTS = {
    7: _FONT_DIR / "Galmuri7.ttf",
    9: _FONT_DIR / "Galmuri9.ttf",
    11: _FONT_DIR / "Galmuri11.ttf",
    14: _FONT_DIR / "Galmuri14.ttf",
}


def _find_fallback() -> str:
    """OS에 맞는 폴백 폰트 경로를 반환한다."""
    if sys.platform == "darwin":
        candidates = ["/System/Library/Fonts/Helvetica.ttc"]
    else:
        # Linux / Raspberry Pi
        candidates = ["/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"]
    for path in candidates:
        if os.path.exists(path):
            return path
    return ""


_FALLBACK_FONT = _find_fallback()

# 폰트 캐시
_font_cache: dict[tuple[str, int], ImageFont.FreeTypeFont] = {}


def _get_font(size: int) -> ImageFont.FreeTypeFont:
    """크기에 맞는 Galmuri 폰트를 로드한다 (캐싱). 없으면 폴백 폰트."""
    galmuri = _SIZE_FONTS.get(size)
    if galmuri is not None and galmuri.exists():
        path = str(galmuri)
    else:
        path = _FALLBACK_FONT

    key = (path, size)
    if key not in _font_cache:
        if path and os.path.exists(path):
            _font_cache[key] = ImageFont.truetype(path, size)
        else:
            _font_cache[key] = ImageFont.load_default(size)
    return _font_cache[key]


def measure_width(text: str, font_size: int) -> int:
    """render_text가 만드는 이미지의 폭(px)."""
    bbox = _get_font(font_size).getbbox(text)
    return bbox[2] - bbox[0] + 2


def fit_line(text: str, font_size: int, max_width: int) -> str:
    """max_width(px) 안에 들어가도록 줄 끝 글자를 잘라낸다."""
    while text and measure_width(text, font_size) > max_width:
        text = text[:-1].rstrip()
    return text


def render_text(
    text: str,
    font_size: int = 11,
    color: tuple = (255, 255, 255, 255),
) -> Image.Image:
    """텍스트 한 줄을 투명 배경의 RGBA 이미지로 렌더링한다.

    그림자 없이 1비트 마스크로 그리므로, 같은 문자열을 배경색으로 다시 그리면 정확히 지워진다.
    """
    font = _get_font(font_size)

    bbox = font.getbbox(text)
    w = bbox[2] - bbox[0] + 2
    h = bbox[3] - bbox[1] + 2
    offset_x = -bbox[0] + 1
    offset_y = -bbox[1] + 1

    # 1비트 마스크로 안티앨리어싱 제거
    mask = Image.new("L", (w, h), 0)
    mask_draw = ImageDraw.Draw(mask)
    mask_draw.fontmode = "1"
    mask_draw.text((offset_x, offset_y), text, font=font, fill=255)

    img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    text_rgba = Image.new("RGBA", (w, h), color)
    img.paste(text_rgba, (0, 0), mask)
    return img
