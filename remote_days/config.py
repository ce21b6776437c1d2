"""Configuration helpers for Remote Days."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

DEFAULT_API_BASE = "https://app.absence.io/api/v2"
DEFAULT_CALENDAR_URL = "https://app.absence.io/#/mycalendar"
DEFAULT_REASON = "Remote Work"
DEFAULT_TIMEZONE = "Europe/Berlin"

WEEKDAYS: Dict[str, int] = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    api_key_id: str
    api_key: str
    email: str
    remote_workdays: Dict[str, bool]
    reason_name: str = DEFAULT_REASON
    timezone_name: str = DEFAULT_TIMEZONE
    api_base: str = DEFAULT_API_BASE
    calendar_url: str = DEFAULT_CALENDAR_URL
    remote_weekdays: frozenset[int] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "remote_weekdays", remote_weekdays(self.remote_workdays))

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)


def parse_remote_workdays(value: str) -> Dict[str, bool]:
    """Turn ``"monday, wednesday"`` into a full weekday-name to flag mapping."""

    selected = {part.strip().lower() for part in value.split(",") if part.strip()}
    unknown = selected - WEEKDAYS.keys()
    if unknown:
        raise ValueError(
            f"Unknown remote workday(s): {', '.join(sorted(unknown))}. "
            f"Use any of: {', '.join(WEEKDAYS)}"
        )
    return {name: name in selected for name in WEEKDAYS}


def remote_weekdays(flags: Dict[str, bool]) -> frozenset[int]:
    """ISO weekday numbers (1=Monday) of every weekday flagged as remote."""

    return frozenset(WEEKDAYS[name] for name, enabled in flags.items() if enabled)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    api_key_id = os.getenv("ABSENCE_API_KEY_ID")
    api_key = os.getenv("ABSENCE_API_KEY")
    email = os.getenv("ABSENCE_EMAIL")
    workdays = os.getenv("REMOTE_WORKDAYS")

    if not api_key_id:
        raise RuntimeError("ABSENCE_API_KEY_ID must be configured")
    if not api_key:
        raise RuntimeError("ABSENCE_API_KEY must be configured")
    if not email:
        raise RuntimeError("ABSENCE_EMAIL must be configured")
    if not workdays:
        raise RuntimeError("REMOTE_WORKDAYS must be configured")

    timezone_name = os.getenv("ABSENCE_TIMEZONE", DEFAULT_TIMEZONE)
    try:
        ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Unknown time zone: {timezone_name}") from exc

    return Settings(
        api_key_id=api_key_id,
        api_key=api_key,
        email=email,
        remote_workdays=parse_remote_workdays(workdays),
        reason_name=os.getenv("REMOTE_WORK_REASON", DEFAULT_REASON),
        timezone_name=timezone_name,
        api_base=os.getenv("ABSENCE_API_BASE", DEFAULT_API_BASE),
        calendar_url=os.getenv("ABSENCE_CALENDAR_URL", DEFAULT_CALENDAR_URL),
    )


__all__ = ["Settings", "WEEKDAYS", "load_settings", "parse_remote_workdays", "remote_weekdays"]
