"""
Core protocol types for the Sans-I/O CalDAV implementation.

The first half of this module holds HTTP-level request/response
dataclasses, independent of any I/O implementation.  The second half
holds the calendar-level data model the clients hand to and receive
from their callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DAVMethod(Enum):
    """WebDAV/CalDAV HTTP methods."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    PROPFIND = "PROPFIND"
    PROPPATCH = "PROPPATCH"
    REPORT = "REPORT"


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (GET, PUT, PROPFIND, etc.)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
    """

    method: DAVMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def with_header(self, name: str, value: str) -> "DAVRequest":
        """Return new request with additional header."""
        new_headers = {**self.headers, name: value}
        return DAVRequest(
            method=self.method,
            url=self.url,
            headers=new_headers,
            body=self.body,
        )


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
        url: Final URL of the request, after redirects (optional)
    """

    status: int
    headers: dict[str, str]
    body: bytes
    url: str | None = None

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def is_multistatus(self) -> bool:
        """True if this is a 207 Multi-Status response."""
        return self.status == 207

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return default

    @property
    def reason(self) -> str:
        """Return a reason phrase for the status code."""
        reasons = {
            200: "OK",
            201: "Created",
            204: "No Content",
            207: "Multi-Status",
            301: "Moved Permanently",
            302: "Found",
            304: "Not Modified",
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            405: "Method Not Allowed",
            409: "Conflict",
            412: "Precondition Failed",
            415: "Unsupported Media Type",
            500: "Internal Server Error",
            501: "Not Implemented",
            502: "Bad Gateway",
            503: "Service Unavailable",
            507: "Insufficient Storage",
        }
        return reasons.get(self.status, "Unknown")


@dataclass
class PropfindResult:
    """
    Parsed result for a single DAV:response element.

    Attributes:
        href: Unquoted path of the resource
        properties: Dict of property tag -> value, for properties found
        property_status: Dict of property tag -> status code, for every
            property the server reported on (including 404s)
        status: Response-level HTTP status (default 200)
    """

    href: str
    properties: dict[str, Any] = field(default_factory=dict)
    property_status: dict[str, int] = field(default_factory=dict)
    status: int = 200


@dataclass
class MultistatusResponse:
    """
    Parsed multi-status response containing multiple results.

    Attributes:
        responses: List of individual response results
        sync_token: Sync token if present (for sync-collection)
    """

    responses: list[PropfindResult] = field(default_factory=list)
    sync_token: str | None = None


# =========================================================================
# Calendar data model
# =========================================================================


@dataclass
class CalendarObject:
    """
    A calendar object resource (an .ics file on the server).

    Attributes:
        path: Server path, the identity of the object
        mod_time: DAV:getlastmodified / Last-Modified, if known
        content_length: Size in bytes, 0 if unknown
        etag: Entity tag, without the surrounding quotes
        data: Raw icalendar payload, None if not fetched
    """

    path: str
    mod_time: datetime | None = None
    content_length: int = 0
    etag: str = ""
    data: bytes | None = None

    @property
    def icalendar_instance(self) -> Any:
        """The payload parsed by the icalendar library, or None"""
        if not self.data:
            return None
        import icalendar

        return icalendar.Calendar.from_ical(self.data)


@dataclass
class Calendar:
    """
    A calendar collection.

    Attributes:
        path: Server path of the collection
        name: DAV:displayname
        description: C:calendar-description
        max_resource_size: C:max-resource-size in bytes, 0 if not given
        supported_component_set: Component names, e.g. ["VEVENT", "VTODO"]
        color: Apple calendar-color
        timezone: C:calendar-timezone
        sync_token: DAV:sync-token of the collection
        current_user_privileges: Privilege names, e.g. ["read", "write"]
    """

    path: str
    name: str = ""
    description: str = ""
    max_resource_size: int = 0
    supported_component_set: list[str] = field(default_factory=list)
    color: str = ""
    timezone: str = ""
    sync_token: str = ""
    current_user_privileges: list[str] = field(default_factory=list)


@dataclass
class TextMatch:
    text: str
    negate_condition: bool = False


@dataclass
class ParamFilter:
    name: str
    is_not_defined: bool = False
    text_match: TextMatch | None = None


@dataclass
class PropFilter:
    """
    A C:prop-filter.  Either set is_not_defined, or give constraints;
    setting both makes no sense.
    """

    name: str
    is_not_defined: bool = False
    start: datetime | None = None
    end: datetime | None = None
    text_match: TextMatch | None = None
    param_filters: list[ParamFilter] = field(default_factory=list)


@dataclass
class CompFilter:
    """
    A C:comp-filter, the root of a calendar-query filter tree.
    Either set is_not_defined, or give constraints; setting both makes
    no sense.
    """

    name: str
    is_not_defined: bool = False
    start: datetime | None = None
    end: datetime | None = None
    prop_filters: list[PropFilter] = field(default_factory=list)
    comp_filters: list["CompFilter"] = field(default_factory=list)


@dataclass
class CalendarExpandRequest:
    start: datetime
    end: datetime


@dataclass
class CalendarCompRequest:
    """
    Which parts of the calendar data the server should return.

    Mirrors the C:comp tree inside a C:calendar-data request element.
    """

    name: str
    all_props: bool = False
    props: list[str] = field(default_factory=list)
    all_comps: bool = False
    comps: list["CalendarCompRequest"] = field(default_factory=list)
    expand: CalendarExpandRequest | None = None


@dataclass
class CalendarQueryRequest:
    comp_request: CalendarCompRequest
    filter: CompFilter


@dataclass
class SyncQuery:
    """
    Input to a sync-collection run.

    Attributes:
        sync_token: Token from the previous run, empty for a full sync
        limit: Max number of results, <= 0 means unlimited
        start_time: On a full sync, drop events that are over before
            this time.  Ignored when sync_token is set.
    """

    sync_token: str = ""
    limit: int = 0
    start_time: datetime | None = None


@dataclass
class SyncResponse:
    """
    Result of a sync-collection run.

    Attributes:
        sync_token: Token to hand in on the next run
        calendar: Refreshed properties of the collection itself, if the
            server reported them
        updated: New or changed objects
        deleted: Paths of objects removed since the previous run
    """

    sync_token: str = ""
    calendar: Calendar | None = None
    updated: list[CalendarObject] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


@dataclass
class CalendarListSyncResult:
    next_sync_token: str = ""
    updated_calendars: list[Calendar] = field(default_factory=list)
    deleted_calendars: list[str] = field(default_factory=list)
