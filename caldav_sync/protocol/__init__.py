"""
Sans-I/O CalDAV protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (DAVRequest, DAVResponse, calendar data model)
- xml_builders: Pure functions to build XML request bodies, including
  the encoding of calendar-query filter trees
- xml_parsers: Pure functions to parse XML response bodies
- operations: CalDAVProtocol class combining builders and parsers

Example usage:

    from caldav_sync.protocol import CalDAVProtocol

    protocol = CalDAVProtocol(base_url="https://cal.example.com")

    # Build a request (no I/O)
    request = protocol.propfind_request(
        path="/calendars/user/",
        props=["displayname", "resourcetype"],
        depth=1
    )

    # Execute via your preferred I/O (sync, async, or mock)
    response = your_http_client.execute(request)

    # Parse response (no I/O)
    result = protocol.parse_multistatus(response)
"""

from .types import (
    # Enums
    DAVMethod,
    # Request/Response
    DAVRequest,
    DAVResponse,
    MultistatusResponse,
    PropfindResult,
    # Calendar data model
    Calendar,
    CalendarCompRequest,
    CalendarExpandRequest,
    CalendarListSyncResult,
    CalendarObject,
    CalendarQueryRequest,
    CompFilter,
    ParamFilter,
    PropFilter,
    SyncQuery,
    SyncResponse,
    TextMatch,
)
from .xml_builders import (
    build_calendar_multiget_body,
    build_calendar_query_body,
    build_propfind_body,
    build_proppatch_body,
    build_sync_collection_body,
    encode_comp_filter,
    encode_param_filter,
    encode_prop_filter,
)
from .xml_parsers import (
    decode_calendar,
    decode_calendar_object,
    parse_multistatus,
)
from .operations import CalDAVProtocol

__all__ = [
    # Enums
    "DAVMethod",
    # Request/Response
    "DAVRequest",
    "DAVResponse",
    "MultistatusResponse",
    "PropfindResult",
    # Calendar data model
    "Calendar",
    "CalendarCompRequest",
    "CalendarExpandRequest",
    "CalendarListSyncResult",
    "CalendarObject",
    "CalendarQueryRequest",
    "CompFilter",
    "ParamFilter",
    "PropFilter",
    "SyncQuery",
    "SyncResponse",
    "TextMatch",
    # XML Builders
    "build_calendar_multiget_body",
    "build_calendar_query_body",
    "build_propfind_body",
    "build_proppatch_body",
    "build_sync_collection_body",
    "encode_comp_filter",
    "encode_param_filter",
    "encode_prop_filter",
    # XML Parsers
    "decode_calendar",
    "decode_calendar_object",
    "parse_multistatus",
    # Protocol
    "CalDAVProtocol",
]
