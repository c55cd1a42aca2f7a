"""
Sync operations - Sans-I/O logic for RFC 6578 sync-collection.

The client issues the sync-collection REPORT (and, when needed, the
backfill multiget); everything in between lives here:

- classify_entry(): is a response entry a deletion, the collection
  itself, or an updated calendar object?
- should_include_for_start_cutoff(): the client-side "only events that
  are still relevant at time T" decision, applied on full syncs only.
- SyncAccumulator: the two-pass bookkeeping of resolved results and
  objects waiting for their payload.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

from caldav_sync.lib.ics import extract_event_metadata
from caldav_sync.lib.ics import NoMetadataError
from caldav_sync.lib.url import same_collection_path
from caldav_sync.operations.calendar_ops import check_calendar
from caldav_sync.protocol.types import Calendar
from caldav_sync.protocol.types import CalendarListSyncResult
from caldav_sync.protocol.types import CalendarObject
from caldav_sync.protocol.types import MultistatusResponse
from caldav_sync.protocol.types import PropfindResult
from caldav_sync.protocol.types import SyncQuery
from caldav_sync.protocol.types import SyncResponse
from caldav_sync.protocol.xml_parsers import decode_calendar
from caldav_sync.protocol.xml_parsers import decode_calendar_object

log = logging.getLogger(__name__)

DELETED = "deleted"
COLLECTION = "collection"
OBJECT = "object"


def effective_cutoff(query: SyncQuery) -> Optional[datetime]:
    """
    The start-time cutoff to apply, in UTC.

    Only a full sync (no token) is filtered.  A token already limits
    the report to changes, and a changed recurring event must be
    reported even if none of its instances fall after the cutoff.
    """
    if query.sync_token or query.start_time is None:
        return None
    return query.start_time.astimezone(timezone.utc)


@dataclass
class SyncEntry:
    kind: str
    path: str
    calendar: Optional[Calendar] = None
    obj: Optional[CalendarObject] = None


def classify_entry(result: PropfindResult, collection_path: str) -> SyncEntry:
    """
    Sort one response entry of a sync-collection report.

    A 404 entry is a deletion, even when it names the collection itself.
    """
    if result.status == 404:
        return SyncEntry(kind=DELETED, path=result.href)
    if same_collection_path(result.href, collection_path):
        return SyncEntry(
            kind=COLLECTION,
            path=result.href,
            calendar=decode_calendar(result, assume_calendar=True),
        )
    return SyncEntry(
        kind=OBJECT,
        path=result.href,
        obj=decode_calendar_object(result, path=result.href),
    )


def should_include_for_start_cutoff(obj: CalendarObject, cutoff: datetime) -> bool:
    """
    Decide whether an object is relevant at or after the cutoff.

    Recurring events without a known end are always relevant.  Bounded
    recurrences count by their UNTIL, single events by DTEND, or DTSTART
    when there is no DTEND.  When the payload can't tell, the
    modification time decides, and failing that the object is kept.
    """
    try:
        meta = extract_event_metadata(obj.data)
    except NoMetadataError:
        meta = None

    if meta is not None:
        if meta.recurring:
            if meta.recurrence_end is None:
                return True
            return not meta.recurrence_end < cutoff
        if meta.end is not None:
            return not meta.end < cutoff
        if meta.start is not None:
            return not meta.start < cutoff

    if obj.mod_time is not None:
        return not obj.mod_time.astimezone(timezone.utc) < cutoff

    return True


def merge_backfilled(pending: CalendarObject, fetched: CalendarObject) -> CalendarObject:
    """
    Complete an object from the sync report with what the multiget
    returned.  Metadata is only replaced by non-empty fetched values.
    """
    pending.data = fetched.data
    if fetched.mod_time is not None:
        pending.mod_time = fetched.mod_time
    if fetched.content_length:
        pending.content_length = fetched.content_length
    if fetched.etag:
        pending.etag = fetched.etag
    return pending


class SyncAccumulator:
    """
    Builds a SyncResponse from the entries of a sync-collection report.

    Objects that need their payload to pass the cutoff, but came without
    one, are parked in ``pending`` until complete_backfill() is given
    the result of the multiget.
    """

    def __init__(self, collection_path: str, query: SyncQuery, sync_token: Optional[str]):
        self.collection_path = collection_path
        self.cutoff = effective_cutoff(query)
        self.response = SyncResponse(sync_token=sync_token or "")
        self.pending: Dict[str, CalendarObject] = {}

    def add(self, result: PropfindResult) -> None:
        entry = classify_entry(result, self.collection_path)
        if entry.kind == DELETED:
            self.response.deleted.append(entry.path)
            return
        if entry.kind == COLLECTION:
            if entry.calendar is not None:
                self.response.calendar = entry.calendar
            return

        obj = entry.obj
        if self.cutoff is not None:
            if not obj.data:
                self.pending[entry.path] = obj
                return
            if not should_include_for_start_cutoff(obj, self.cutoff):
                log.debug("sync: %s ends before %s, skipped", entry.path, self.cutoff)
                return
        self.response.updated.append(obj)

    def add_all(self, results: Iterable[PropfindResult]) -> None:
        for result in results:
            self.add(result)

    @property
    def pending_paths(self) -> List[str]:
        return list(self.pending)

    def complete_backfill(self, fetched: Iterable[CalendarObject]) -> None:
        """
        Merge the multiget results into the pending objects, in the order
        they were deferred, and apply the cutoff to them.
        """
        fetched_by_path = {obj.path: obj for obj in fetched if obj is not None}
        for path, obj in self.pending.items():
            match = fetched_by_path.get(path)
            if match is not None:
                merge_backfilled(obj, match)
            if not obj.data:
                log.warning("calendar-data for %s is still missing after multiget", path)
            if self.cutoff is not None and not should_include_for_start_cutoff(obj, self.cutoff):
                continue
            self.response.updated.append(obj)
        self.pending = {}

    def result(self) -> SyncResponse:
        return self.response


def process_calendar_list_sync(
    multistatus: MultistatusResponse, home_set: str
) -> CalendarListSyncResult:
    """
    Turn a sync-collection report on a calendar home set into the lists
    of changed and removed calendars.

    Raises:
        ConsistencyError: if a calendar reports a negative max-resource-size
    """
    result = CalendarListSyncResult(next_sync_token=multistatus.sync_token or "")
    for entry in multistatus.responses:
        if same_collection_path(entry.href, home_set):
            continue
        if entry.status == 404:
            result.deleted_calendars.append(entry.href)
            continue
        calendar = decode_calendar(entry)
        if calendar is None:
            continue
        check_calendar(calendar)
        result.updated_calendars.append(calendar)
    return result
