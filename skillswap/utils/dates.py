from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import TypeAdapter

_datetime_adapter = TypeAdapter(datetime)

def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with fixed microsecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")

def to_iso(value: Optional[Union[datetime, str]]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

def parse_datetime(value: Union[datetime, str]) -> datetime:
    # Postgres trims trailing zeros from fractional seconds ("...:00.12+00:00")
    parsed = _datetime_adapter.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
