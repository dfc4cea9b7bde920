"""설정 파일 로더 모듈."""

import copy
import json
from pathlib import Path

# 기본 설정 경로
_CONFIG_PATH = Path(__file__).parent / "config.json"

UNITS = ("metric", "imperial")

# 기본값 — config.json에 누락된 키가 있을 때 사용
_DEFAULTS = {
    "sensor": {
        "i2c_bus": 1,
        "light_threshold_high": 100,   # 이 값 이상이면 화면을 켠다
        "light_threshold_low": 50,     # 이 값 이하면 화면을 끈다
        "gesture_poll_ms": 200,
    },
    "ble": {
        "device_name_prefix": "IDM-",
        "reconnect_interval_sec": 10,
        "scan_timeout_sec": 10,
    },
    "display": {
        "brightness": 50,
    },
    "clock": {
        "format_24h": True,
    },
    "weather": {
        "city": "Boulder",
        "lat": 40.015,
        "lon": -105.2705,
        "units": "metric",
        "update_interval_sec": 20,
        "max_hourly_entries": 4,
        "timeout_sec": 10,
    },
    "logging": {
        "level": "INFO",
    },
}


class ConfigError(ValueError):
    """설정 값이 잘못되었다."""


def _deep_merge(base: dict, override: dict) -> dict:
    """base 딕셔너리에 override 값을 병합한다 (깊은 병합)."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_config(config: dict) -> dict:
    """값 범위를 검사한다. 잘못되면 ConfigError."""
    sensor = config["sensor"]
    weather = config["weather"]

    if sensor["light_threshold_high"] <= sensor["light_threshold_low"]:
        raise ConfigError(
            "sensor.light_threshold_high는 light_threshold_low보다 커야 합니다 "
            f"({sensor['light_threshold_high']} <= {sensor['light_threshold_low']})"
        )
    if sensor["gesture_poll_ms"] <= 0:
        raise ConfigError(f"sensor.gesture_poll_ms는 양수여야 합니다: {sensor['gesture_poll_ms']}")
    if weather["units"] not in UNITS:
        raise ConfigError(f"weather.units는 {UNITS} 중 하나여야 합니다: {weather['units']!r}")
    if weather["update_interval_sec"] <= 0:
        raise ConfigError(f"weather.update_interval_sec는 양수여야 합니다: {weather['update_interval_sec']}")
    if weather["max_hourly_entries"] < 1:
        raise ConfigError(f"weather.max_hourly_entries는 1 이상이어야 합니다: {weather['max_hourly_entries']}")
    return config


def load_config(path: Path | None = None) -> dict:
    """설정 파일을 읽어 딕셔너리로 반환한다.

    파일이 없으면 기본값을 사용한다. 병합 후 값을 검증한다.
    """
    config_path = path or _CONFIG_PATH
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                user_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"설정 파일 형식 오류: {config_path}: {e}") from e
        return validate_config(_deep_merge(copy.deepcopy(_DEFAULTS), user_config))
    return validate_config(copy.deepcopy(_DEFAULTS))
