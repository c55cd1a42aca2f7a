"""
CalDAV protocol operations combining request building and response parsing.

This class provides a high-level interface to CalDAV operations while
remaining completely I/O-free.
"""

import base64
from typing import Dict, List, Optional

from caldav_sync import __version__
from caldav_sync.elements import dav
from caldav_sync.lib import url as urlutil

from .types import (
    CalendarCompRequest,
    CalendarQueryRequest,
    DAVMethod,
    DAVRequest,
    DAVResponse,
    MultistatusResponse,
)
from .xml_builders import (
    build_calendar_multiget_body,
    build_calendar_query_body,
    build_propfind_body,
    build_proppatch_body,
    build_sync_collection_body,
)
from .xml_parsers import parse_multistatus

MIME_TYPE = "text/calendar"


def quote_etag(etag: str) -> str:
    return f'"{etag}"'


class CalDAVProtocol:
    """
    Sans-I/O CalDAV protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = CalDAVProtocol(base_url="https://cal.example.com/")

        # Build request
        request = protocol.propfind_request("/calendars/user/", ["displayname"])

        # Execute with your I/O (not shown)
        response = io.execute(request)

        # Parse response
        results = protocol.parse_multistatus(response)
    """

    def __init__(
        self,
        base_url: str = "",
        username: Optional[str] = None,
        password: Optional[str] = None,
        huge_tree: bool = False,
    ):
        """
        Initialize the protocol handler.

        Args:
            base_url: Base URL for the CalDAV server
            username: Username for Basic authentication
            password: Password for Basic authentication
            huge_tree: Allow parsing very large XML documents
        """
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.username = username
        self.password = password
        self.huge_tree = huge_tree
        self._auth_header = self._build_auth_header(username, password)

    def _build_auth_header(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> Optional[str]:
        """Build Basic auth header if credentials provided."""
        if username and password:
            credentials = f"{username}:{password}"
            encoded = base64.b64encode(credentials.encode("utf-8")).decode()
            return f"Basic {encoded}"
        return None

    def _base_headers(self) -> Dict[str, str]:
        """Return base headers for all requests."""
        headers = {
            "User-Agent": "caldav-sync/" + __version__,
            "Content-Type": "application/xml; charset=utf-8",
        }
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    def _resolve_url(self, path: str) -> str:
        return urlutil.join(self.base_url, path)

    def _xml_request(
        self,
        method: DAVMethod,
        path: str,
        body: bytes,
        depth: Optional[int] = None,
    ) -> DAVRequest:
        headers = self._base_headers()
        if depth is not None:
            headers["Depth"] = str(depth)
        return DAVRequest(
            method=method,
            url=self._resolve_url(path),
            headers=headers,
            body=body,
        )

    # =========================================================================
    # Request builders
    # =========================================================================

    def propfind_request(
        self,
        path: str,
        props: Optional[List[str]] = None,
        depth: int = 0,
    ) -> DAVRequest:
        """
        Build a PROPFIND request.

        Args:
            path: Resource path or URL
            props: Property names to retrieve (None for minimal)
            depth: Depth header value (0 or 1)
        """
        return self._xml_request(
            DAVMethod.PROPFIND, path, build_propfind_body(props), depth=depth
        )

    def proppatch_request(
        self,
        path: str,
        set_props: Optional[Dict[str, str]] = None,
    ) -> DAVRequest:
        """
        Build a PROPPATCH request to set properties.

        Args:
            path: Resource path or URL
            set_props: Properties to set (name -> value)
        """
        return self._xml_request(
            DAVMethod.PROPPATCH, path, build_proppatch_body(set_props)
        )

    def calendar_query_request(
        self,
        path: str,
        query: CalendarQueryRequest,
    ) -> DAVRequest:
        """
        Build a calendar-query REPORT request.

        Args:
            path: Calendar collection path or URL
            query: Filter tree and calendar-data shape
        """
        return self._xml_request(
            DAVMethod.REPORT, path, build_calendar_query_body(query), depth=1
        )

    def calendar_multiget_request(
        self,
        path: str,
        hrefs: List[str],
        comp_request: Optional[CalendarCompRequest] = None,
    ) -> DAVRequest:
        """
        Build a calendar-multiget REPORT request.

        Args:
            path: Calendar collection path or URL
            hrefs: List of calendar object paths to retrieve
            comp_request: Shape of the calendar-data to return
        """
        return self._xml_request(
            DAVMethod.REPORT,
            path,
            build_calendar_multiget_body(hrefs, comp_request),
            depth=1,
        )

    def sync_collection_request(
        self,
        path: str,
        sync_token: Optional[str] = None,
        props: Optional[List[str]] = None,
        limit: int = 0,
        prop: Optional[dav.Prop] = None,
    ) -> DAVRequest:
        """
        Build a sync-collection REPORT request.

        The reach of the report is given by the sync-level element in
        the body (immediate children), RFC 6578 requires Depth: 0.

        Args:
            path: Collection path or URL
            sync_token: Previous sync token (None or "" for initial sync)
            props: Property names to include in response
            limit: Max number of results, <= 0 for no limit
            prop: Prebuilt D:prop element, overrides props
        """
        body = build_sync_collection_body(
            sync_token, props=props, limit=limit, prop=prop
        )
        return self._xml_request(DAVMethod.REPORT, path, body, depth=0)

    def get_request(
        self,
        path: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> DAVRequest:
        """
        Build a GET request for a calendar object.

        Args:
            path: Resource path or URL
            headers: Additional headers
        """
        req_headers = self._base_headers()
        req_headers.pop("Content-Type", None)  # GET doesn't need Content-Type
        req_headers["Accept"] = MIME_TYPE
        if headers:
            req_headers.update(headers)

        return DAVRequest(
            method=DAVMethod.GET,
            url=self._resolve_url(path),
            headers=req_headers,
        )

    def put_request(
        self,
        path: str,
        data: bytes,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
        content_type: str = "text/calendar; charset=utf-8",
    ) -> DAVRequest:
        """
        Build a PUT request to create/update a calendar object.

        Args:
            path: Resource path or URL
            data: Resource content
            if_match: Only overwrite if the current etag is this one
            if_none_match: An etag, or "*" to only create new resources
            content_type: Content-Type header
        """
        headers = self._base_headers()
        headers["Content-Type"] = content_type
        if if_match:
            headers["If-Match"] = quote_etag(if_match)
        if if_none_match:
            if if_none_match == "*":
                headers["If-None-Match"] = "*"
            else:
                headers["If-None-Match"] = quote_etag(if_none_match)

        return DAVRequest(
            method=DAVMethod.PUT,
            url=self._resolve_url(path),
            headers=headers,
            body=data,
        )

    def delete_request(
        self,
        path: str,
        if_match: Optional[str] = None,
    ) -> DAVRequest:
        """
        Build a DELETE request.

        Args:
            path: Resource path to delete
            if_match: Only delete if the current etag is this one
        """
        headers = self._base_headers()
        headers.pop("Content-Type", None)  # DELETE doesn't need Content-Type
        if if_match:
            headers["If-Match"] = quote_etag(if_match)

        return DAVRequest(
            method=DAVMethod.DELETE,
            url=self._resolve_url(path),
            headers=headers,
        )

    # =========================================================================
    # Response parsers
    # =========================================================================

    def parse_multistatus(self, response: DAVResponse) -> MultistatusResponse:
        """
        Parse a 207 Multi-Status response (PROPFIND, PROPPATCH, REPORT).

        Args:
            response: The DAVResponse from the server
        """
        return parse_multistatus(response.body, huge_tree=self.huge_tree)
