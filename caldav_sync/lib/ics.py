#!/usr/bin/env python
"""
Best-effort extraction of the time window of an event.

This is not an icalendar parser.  It reads just enough of a
calendar-data payload to tell when the first VEVENT in it starts and
ends, and whether (and until when) it recurs.  Anything it does not
understand is ignored.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from typing import Callable
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from caldav_sync.lib.python_utilities import to_local

utc_tz = timezone.utc


class NoMetadataError(ValueError):
    """The payload is empty or holds no usable DTSTART/DTEND/RRULE"""

    pass


@dataclass
class EventMetadata:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    recurring: bool = False
    ## None means the recurrence set has no known end
    recurrence_end: Optional[datetime] = None
    recurrence_open: bool = False


def unfold_lines(data: str) -> List[str]:
    """
    Normalize line endings and undo RFC 5545 line folding.

    A line starting with a single space or tab continues the previous
    line; the whitespace character is dropped.  Empty lines are skipped.
    """
    lines: List[str] = []
    current: Optional[str] = None
    for line in data.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line[:1] in (" ", "\t") and current is not None:
            current += line[1:]
            continue
        if current:
            lines.append(current)
        current = line
    if current:
        lines.append(current)
    return lines


def split_property(line: str) -> Tuple[str, str]:
    """
    Split a content line into an upper-cased property name and the value.

    The value is everything after the first colon, the name is
    everything before the first semicolon or colon.

    >>> split_property("DTSTART;TZID=Europe/Oslo:20240101T100000")
    ('DTSTART', '20240101T100000')
    """
    name = re.split("[;:]", line, maxsplit=1)[0]
    idx = line.find(":")
    value = line[idx + 1 :].strip() if idx >= 0 else ""
    return name.strip().upper(), value


_utc_timestamp_re = re.compile(r"[0-9]{8}T[0-9]{6}Z")
_floating_timestamp_re = re.compile(r"[0-9]{8}T[0-9]{6}")
_date_re = re.compile(r"[0-9]{8}")


def _utc_timestamp(value: str) -> Optional[datetime]:
    if not _utc_timestamp_re.fullmatch(value):
        return None
    return datetime.strptime(value, "%Y%m%dT%H%M%SZ").replace(tzinfo=utc_tz)


def _floating_timestamp(value: str) -> Optional[datetime]:
    if not _floating_timestamp_re.fullmatch(value):
        return None
    ## Floating (or TZID-qualified) time.  No zone conversion is done,
    ## the wall clock value is taken as UTC so it can be ordered
    ## against an aware cutoff.
    return datetime.strptime(value, "%Y%m%dT%H%M%S").replace(tzinfo=utc_tz)


def _date(value: str) -> Optional[datetime]:
    if not _date_re.fullmatch(value):
        return None
    return datetime.strptime(value, "%Y%m%d").replace(tzinfo=utc_tz)


## First match wins
_time_formats: List[Callable[[str], Optional[datetime]]] = [
    _utc_timestamp,
    _floating_timestamp,
    _date,
]


def parse_ics_time(value: str) -> Optional[datetime]:
    """
    Parse a DATE or DATE-TIME value, or return None if it can't be parsed.

    >>> parse_ics_time("20231002T120000Z")
    datetime.datetime(2023, 10, 2, 12, 0, tzinfo=datetime.timezone.utc)
    """
    value = value.strip()
    for fmt in _time_formats:
        try:
            ret = fmt(value)
        except ValueError:
            continue
        if ret is not None:
            return ret
    return None


def _apply_rrule(meta: EventMetadata, value: str) -> None:
    meta.recurring = True
    ## open until proven otherwise
    meta.recurrence_open = True
    for part in value.split(";"):
        if "=" not in part:
            continue
        key, val = part.split("=", 1)
        key = key.strip().upper()
        val = val.strip()
        if key == "UNTIL":
            until = parse_ics_time(val)
            if until is not None:
                meta.recurrence_end = until
                meta.recurrence_open = False
        elif key == "COUNT":
            try:
                int(val)
            except ValueError:
                continue
            meta.recurrence_open = False


def extract_event_metadata(data: Union[str, bytes, None]) -> EventMetadata:
    """
    Summarize the first VEVENT of a calendar-data payload.

    Raises:
        NoMetadataError: if the payload is empty, or if the event is not
            recurring and has neither DTSTART nor DTEND.
    """
    if not data:
        raise NoMetadataError("empty event payload")

    meta = EventMetadata()
    in_event = False
    for line in unfold_lines(to_local(data)):
        marker = line.strip().upper()
        if marker == "BEGIN:VEVENT":
            in_event = True
            continue
        if marker == "END:VEVENT":
            if in_event:
                break
            continue
        if not in_event:
            continue

        name, value = split_property(line)
        if not value:
            continue
        if name == "DTSTART":
            meta.start = parse_ics_time(value) or meta.start
        elif name == "DTEND":
            meta.end = parse_ics_time(value) or meta.end
        elif name == "RRULE":
            _apply_rrule(meta, value)

    if meta.recurring:
        return meta
    if meta.start is None and meta.end is None:
        raise NoMetadataError("event metadata missing DTSTART/DTEND")
    return meta
