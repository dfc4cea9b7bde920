"""시간 콘텐츠 모듈 — 시간 패널에 표시할 문자열을 만든다."""

from datetime import datetime


class ClockContent:
    """시간 문자열을 생성한다."""

    def __init__(self, format_24h: bool = True):
        self._format_24h = format_24h

    def format_time(self, now: datetime) -> str:
        """24시간제면 "HH:MM", 12시간제면 "hh:MM AM/PM"."""
        if self._format_24h:
            return f"{now.hour:02d}:{now.minute:02d}"
        hour = now.hour % 12
        if hour == 0:
            hour = 12
        ampm = "AM" if now.hour < 12 else "PM"
        return f"{hour:02d}:{now.minute:02d} {ampm}"
