"""Envelope decoder for container-captured CS2 server logs.

Every raw line is a JSON object written by the container log driver::

    {"log": "L 08/01/2025 - 17:25:24: World triggered \\"Round_Start\\"\\n",
     "stream": "stdout", "time": "2025-08-01T17:30:01.538231956Z"}

Provides:
- decode_envelope: validate the JSON wrapper, return (timestamp, content)
- decode_line: as above, but also require the ``L `` server log sentinel
- try_decode_line: non-raising variant used by the scanners
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError, field_validator

from cs2logs.config import LOG_LINE_SENTINEL
from cs2logs.exceptions import NotDecodable

_ISO_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC-based datetime.

    Docker writes nanosecond fractions, which ``datetime`` cannot hold;
    they are truncated to microseconds. A missing offset is read as UTC.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    m = _ISO_RE.match(value.strip())
    if not m:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}")
    text = m.group("base").replace(" ", "T")
    if m.group("fraction"):
        text += "." + m.group("fraction")[:6].ljust(6, "0")
    tz = m.group("tz")
    if tz is None or tz == "Z":
        text += "+00:00"
    else:
        text += tz if ":" in tz else f"{tz[:3]}:{tz[3:]}"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LogEnvelope(BaseModel):
    """The JSON wrapper around one server log line."""

    time: datetime
    log: str

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> object:
        if isinstance(v, str):
            return parse_timestamp(v)
        return v


@dataclass(frozen=True)
class DecodedLine:
    """A log line unwrapped from its envelope, tagged with its position."""

    index: int
    timestamp: datetime
    text: str


def decode_envelope(raw: str) -> tuple[datetime, str]:
    """Validate the JSON envelope and return ``(timestamp, content)``.

    Does not check the ``L `` sentinel, so it also accepts non-event
    server output such as ``JSON_BEGIN`` blocks or startup banners.

    Raises:
        NotDecodable: Invalid JSON, missing ``time``/``log``, or empty content.
    """
    try:
        envelope = LogEnvelope.model_validate_json(raw)
    except ValidationError as e:
        raise NotDecodable(f"invalid log envelope: {e.error_count()} error(s)") from e

    content = envelope.log.rstrip("\r\n")
    if not content:
        raise NotDecodable("log envelope has empty content")
    return envelope.time, content


def decode_line(raw: str, index: int) -> DecodedLine:
    """Unwrap a raw line into a ``DecodedLine``.

    Pure function: no logging, no side effects.

    Raises:
        NotDecodable: The envelope is invalid or the content is not a
            server log line (no ``L `` sentinel).
    """
    timestamp, content = decode_envelope(raw)
    if not content.startswith(LOG_LINE_SENTINEL):
        raise NotDecodable("content is not a server log line", line_index=index)
    return DecodedLine(index=index, timestamp=timestamp, text=content)


def try_decode_line(raw: str, index: int) -> DecodedLine | None:
    """Like ``decode_line`` but returns None instead of raising."""
    try:
        return decode_line(raw, index)
    except NotDecodable:
        return None
