"""뷰 포맷 모듈 — 날씨 스냅샷을 본문 패널 문자열로 변환한다.

본문은 7px 글자로 64px 폭에 들어가야 하므로 한 줄에 한 가지만 담는다.
"""

from content.weather import CurrentWeather, HourlyForecast
from state import ViewKind


def _num(value: float) -> str:
    """소수 첫째 자리까지, 정수면 소수점 없이."""
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def format_current(data: CurrentWeather) -> str:
    """현재 날씨 본문.

    Boulder
    72.4F
    Partly Cloudy
    5.1mph NW
    H80F L61F
    """
    return "\n".join([
        data.city,
        f"{_num(data.temp)}{data.temp_unit}",
        data.description,
        f"{_num(data.wind_speed)}{data.wind_unit} {data.wind_dir}",
        f"H{data.temp_high:.0f}{data.temp_unit} L{data.temp_low:.0f}{data.temp_unit}",
    ])


def format_hourly(data: HourlyForecast) -> str:
    """시간별 예보 본문. 한 줄에 한 시간씩, 기온과 풍속은 정수로."""
    lines = [data.city]
    for entry in data.entries:
        lines.append(
            f"{entry.time[:2]}h {entry.temp:.0f}{data.temp_unit} "
            f"{entry.wind_speed:.0f}{entry.wind_dir}"
        )
    if not data.entries:
        lines.append("No forecast")
    return "\n".join(lines)


def format_body(view: ViewKind, data) -> str:
    """뷰 종류에 맞는 포맷 함수로 본문을 만든다."""
    try:
        formatter = _FORMATTERS[view]
    except KeyError:
        raise ValueError(f"포맷 함수가 없는 뷰: {view}") from None
    return formatter(data)


_FORMATTERS = {
    ViewKind.CURRENT: format_current,
    ViewKind.HOURLY: format_hourly,
}
