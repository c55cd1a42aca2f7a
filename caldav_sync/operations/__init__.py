"""
Operations Layer - Sans-I/O Business Logic for CalDAV sync and queries.

This package contains pure functions that implement the business logic
without performing any network I/O. Both sync (DAVClient) and async
(AsyncDAVClient) clients use these same functions.

Architecture:
    ┌─────────────────────────────────────┐
    │  DAVClient / AsyncDAVClient         │
    │  (handles I/O)                      │
    ├─────────────────────────────────────┤
    │  Operations Layer (this package)    │
    │  - build_*() -> request data        │
    │  - process_*() -> Result data       │
    │  - Pure functions, no I/O           │
    ├─────────────────────────────────────┤
    │  Protocol Layer (caldav_sync.protocol)
    │  - XML building and parsing         │
    └─────────────────────────────────────┘

Modules:
    calendar_ops: discovery, calendar listing, PROPPATCH and object headers
    query_ops: time range validation, windowing, bisection and merging
    sync_ops: sync-collection entry classification, start cutoff, backfill
"""
from caldav_sync.operations.calendar_ops import build_calendar_update
from caldav_sync.operations.calendar_ops import check_calendar
from caldav_sync.operations.calendar_ops import populate_from_headers
from caldav_sync.operations.query_ops import DEFAULT_RANGE_WINDOW
from caldav_sync.operations.query_ops import MIN_RANGE_WINDOW
from caldav_sync.operations.query_ops import ResultMerger
from caldav_sync.operations.query_ops import split_time_range
from caldav_sync.operations.sync_ops import should_include_for_start_cutoff
from caldav_sync.operations.sync_ops import SyncAccumulator

__all__ = [
    "build_calendar_update",
    "check_calendar",
    "populate_from_headers",
    "DEFAULT_RANGE_WINDOW",
    "MIN_RANGE_WINDOW",
    "ResultMerger",
    "split_time_range",
    "should_include_for_start_cutoff",
    "SyncAccumulator",
]
