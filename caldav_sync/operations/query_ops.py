"""
Range query operations - Sans-I/O logic for time-windowed calendar queries.

Servers commonly cap the number of (expanded) results a single
calendar-query REPORT may return.  A long time span is therefore cut
into fixed-width windows, and a window the server refuses with
507 Insufficient Storage is cut in half and retried, down to a minimum
width.  This module holds the pure parts of that: validation, window
splitting, the bisection decision, request construction and merging.
The clients do the I/O and drive the recursion.
"""
import logging
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple

from caldav_sync.lib import error
from caldav_sync.protocol.types import CalendarExpandRequest
from caldav_sync.protocol.types import CalendarObject
from caldav_sync.protocol.types import CalendarQueryRequest
from caldav_sync.protocol.types import CompFilter
from caldav_sync.protocol.xml_builders import standard_comp_request

log = logging.getLogger(__name__)

DEFAULT_RANGE_WINDOW = timedelta(days=90)
MIN_RANGE_WINDOW = timedelta(days=1)

Window = Tuple[datetime, datetime]


def _to_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ts.astimezone(timezone.utc)


def validate_time_range(
    start: Optional[datetime], end: Optional[datetime]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Check a requested [start, end) interval and convert it to UTC.

    Naive datetimes are taken to be in local time, like everywhere
    else a datetime is sent to the server.

    Raises:
        ValueError: if both bounds are open, or start is not before end
    """
    if start is None and end is None:
        raise ValueError("time range query requires a start or an end")
    start = _to_utc(start)
    end = _to_utc(end)
    if start is not None and end is not None and not start < end:
        raise ValueError("start must be before end for time range query")
    return start, end


def split_time_range(
    start: datetime,
    end: datetime,
    window: timedelta = DEFAULT_RANGE_WINDOW,
) -> List[Window]:
    """
    Cut [start, end) into consecutive windows of the given width.

    The last window is truncated to end.  Each window starts where the
    previous one ended.
    """
    if window <= timedelta(0):
        raise ValueError("range window must be positive")
    windows: List[Window] = []
    current = start
    while current < end:
        window_end = end if end - current <= window else current + window
        windows.append((current, window_end))
        current = window_end
    return windows


def should_bisect(
    err: Exception,
    start: datetime,
    end: datetime,
    min_window: timedelta = MIN_RANGE_WINDOW,
) -> bool:
    """
    True if a failed window query should be retried as two halves.

    Only a capacity failure (507) on a window wider than min_window
    is recovered from; everything else goes to the caller.
    """
    return isinstance(err, error.InsufficientStorageError) and end - start > min_window


def bisect(start: datetime, end: datetime) -> Tuple[Window, Window]:
    mid = start + (end - start) / 2
    return (start, mid), (mid, end)


def build_range_query(
    start: Optional[datetime], end: Optional[datetime]
) -> CalendarQueryRequest:
    """
    A calendar-query for all events intersecting [start, end).

    Recurring events are expanded over the same interval, but only
    when both bounds are known.
    """
    expand = None
    if start is not None and end is not None:
        expand = CalendarExpandRequest(start=start, end=end)
    return CalendarQueryRequest(
        comp_request=standard_comp_request(expand=expand),
        filter=CompFilter(
            name="VCALENDAR",
            comp_filters=[CompFilter(name="VEVENT", start=start, end=end)],
        ),
    )


class ResultMerger:
    """
    Collects calendar objects from several window queries.

    Objects are kept in the order they were first seen.  When a path
    shows up again, the newer object replaces the older one in place.
    """

    def __init__(self) -> None:
        self._objects: List[CalendarObject] = []
        self._index: Dict[str, int] = {}

    def add(self, objects: Iterable[CalendarObject]) -> None:
        for obj in objects:
            idx = self._index.get(obj.path)
            if idx is None:
                self._index[obj.path] = len(self._objects)
                self._objects.append(obj)
            else:
                self._objects[idx] = obj

    @property
    def objects(self) -> List[CalendarObject]:
        return list(self._objects)

    def __len__(self) -> int:
        return len(self._objects)


def merge_by_path(*batches: Iterable[CalendarObject]) -> List[CalendarObject]:
    merger = ResultMerger()
    for batch in batches:
        merger.add(batch)
    return merger.objects
