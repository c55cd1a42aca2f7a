#!/usr/bin/env python
"""
Async CalDAV client implementation using aiohttp.

This module provides ``AsyncDAVClient``, the asyncio counterpart of
``caldav_sync.davclient.DAVClient``.  Both share the Sans-I/O protocol
and operations layers, so they build the same requests and interpret
the responses the same way; only the I/O differs.

Operations honour a ``deadline`` like the sync client does, and in
addition ordinary task cancellation, which aborts the request in
flight and propagates ``asyncio.CancelledError``.

Example:
    async with AsyncDAVClient(url="https://caldav.example.com/dav/") as client:
        changes = await client.sync_calendar("/dav/calendars/alice/work/")
"""
import asyncio
import logging
import sys
from datetime import datetime
from datetime import timedelta
from types import TracebackType
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

import aiohttp

from caldav_sync.davclient import dump_communication
from caldav_sync.davclient import FULL_COMP_REQUEST
from caldav_sync.davclient import split_credentials
from caldav_sync.davclient import to_timedelta
from caldav_sync.io import AsyncIO
from caldav_sync.io import AsyncIOProtocol
from caldav_sync.lib import deadline as deadlines
from caldav_sync.lib import error
from caldav_sync.lib.deadline import Deadline
from caldav_sync.lib.python_utilities import to_wire
from caldav_sync.lib.url import href_to_path
from caldav_sync.lib.url import parent_collection
from caldav_sync.operations import calendar_ops
from caldav_sync.operations import query_ops
from caldav_sync.operations import sync_ops
from caldav_sync.protocol import CalDAVProtocol
from caldav_sync.protocol.types import Calendar
from caldav_sync.protocol.types import CalendarCompRequest
from caldav_sync.protocol.types import CalendarListSyncResult
from caldav_sync.protocol.types import CalendarObject
from caldav_sync.protocol.types import CalendarQueryRequest
from caldav_sync.protocol.types import DAVRequest
from caldav_sync.protocol.types import DAVResponse
from caldav_sync.protocol.types import MultistatusResponse
from caldav_sync.protocol.types import SyncQuery
from caldav_sync.protocol.types import SyncResponse
from caldav_sync.protocol.xml_builders import build_calendar_data_prop
from caldav_sync.protocol.xml_builders import CALENDAR_PROPS
from caldav_sync.protocol.xml_builders import OBJECT_PROPS
from caldav_sync.protocol.xml_builders import standard_comp_request

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger(__name__)


class AsyncDAVClient:
    """
    Async client for CalDAV servers using aiohttp.

    The methods mirror those of DAVClient, as coroutines.
    """

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = 30,
        ssl_verify_cert: bool = True,
        headers: Optional[Dict[str, str]] = None,
        huge_tree: bool = False,
        range_window: Union[timedelta, float] = query_ops.DEFAULT_RANGE_WINDOW,
        min_range_window: Union[timedelta, float] = query_ops.MIN_RANGE_WINDOW,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize the async client.  The arguments are the same as for
        DAVClient, except that session is an aiohttp.ClientSession.
        """
        url, url_username, url_password = split_credentials(url)
        if url_username is not None:
            username = url_username
            password = url_password
        log.debug("url: %s", url)

        self.url = url
        self.username = username
        self.huge_tree = bool(huge_tree)
        self.timeout = float(timeout) if timeout is not None else None
        self.headers = dict(headers or {})
        self.range_window = to_timedelta(range_window)
        self.min_range_window = to_timedelta(min_range_window)
        if self.range_window <= timedelta(0) or self.min_range_window <= timedelta(0):
            raise ValueError("range windows must be positive")

        self.protocol = CalDAVProtocol(
            base_url=url,
            username=username,
            password=password,
            huge_tree=self.huge_tree,
        )
        self.io: AsyncIOProtocol = AsyncIO(
            session=session, timeout=self.timeout, verify_ssl=ssl_verify_cert
        )

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the aiohttp session."""
        await self.io.close()

    async def request(
        self,
        request: DAVRequest,
        phase: str,
        deadline: Optional[Deadline] = None,
    ) -> DAVResponse:
        """
        Send a request, and raise the matching DAVError for a non-2xx
        response.  The request is abandoned when the deadline expires.
        """
        deadlines.check(deadline, phase)
        for name, value in self.headers.items():
            if name not in request.headers:
                request = request.with_header(name, value)

        log.debug("sending request - method=%s, url=%s", request.method.value, request.url)
        remaining = deadline.remaining() if deadline is not None else None
        deadline_bound = deadlines.limits_request(deadline, self.timeout)
        try:
            response = await asyncio.wait_for(
                self.io.execute(
                    request, timeout=deadlines.request_timeout(deadline, self.timeout)
                ),
                remaining,
            )
        except asyncio.TimeoutError as e:
            if deadline_bound or (deadline is not None and deadline.expired):
                raise error.DeadlineExceededError(url=request.url, phase=phase) from e
            raise error.TransportError(
                url=request.url, reason=str(e) or e.__class__.__name__, phase=phase
            ) from e
        except aiohttp.ClientError as e:
            raise error.TransportError(
                url=request.url, reason=str(e) or e.__class__.__name__, phase=phase
            ) from e
        log.debug("server responded with %i %s", response.status, response.reason)

        if error.debug_dump_communication:
            dump_communication(request, response)

        error.raise_for_status(response, request.method.value, url=request.url, phase=phase)
        return response

    async def _multistatus(
        self,
        request: DAVRequest,
        phase: str,
        deadline: Optional[Deadline] = None,
    ) -> MultistatusResponse:
        response = await self.request(request, phase, deadline)
        with error.in_phase(phase):
            return self.protocol.parse_multistatus(response)

    # Discovery

    async def find_current_user_principal(
        self, deadline: Optional[Deadline] = None
    ) -> str:
        request = self.protocol.propfind_request("", ["current-user-principal"], depth=0)
        multistatus = await self._multistatus(request, "discovery", deadline)
        with error.in_phase("discovery"):
            return calendar_ops.extract_principal(multistatus, request.url)

    async def find_calendar_home_set(
        self, principal: str, deadline: Optional[Deadline] = None
    ) -> str:
        request = self.protocol.propfind_request(principal, ["calendar-home-set"], depth=0)
        multistatus = await self._multistatus(request, "discovery", deadline)
        with error.in_phase("discovery"):
            return calendar_ops.extract_calendar_home_set(multistatus, request.url)

    async def find_calendars(
        self, home_set: str, deadline: Optional[Deadline] = None
    ) -> List[Calendar]:
        request = self.protocol.propfind_request(home_set, CALENDAR_PROPS, depth=1)
        multistatus = await self._multistatus(request, "discovery", deadline)
        with error.in_phase("discovery"):
            return calendar_ops.process_calendars(multistatus)

    # Calendars

    async def get_calendar(
        self, path: str, deadline: Optional[Deadline] = None
    ) -> Calendar:
        request = self.protocol.propfind_request(path, CALENDAR_PROPS, depth=0)
        multistatus = await self._multistatus(request, "discovery", deadline)
        with error.in_phase("discovery"):
            return calendar_ops.process_calendar(multistatus, path)

    async def update_calendar(
        self,
        path: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        timezone: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> Calendar:
        props = calendar_ops.build_calendar_update(
            name=name, description=description, color=color, timezone=timezone
        )
        request = self.protocol.proppatch_request(path, props)
        multistatus = await self._multistatus(request, "crud", deadline)
        with error.in_phase("crud"):
            calendar_ops.check_proppatch(multistatus, request.url)
        return await self.get_calendar(path, deadline=deadline)

    async def sync_calendar_list(
        self,
        home_set: str,
        sync_token: str = "",
        limit: int = 0,
        deadline: Optional[Deadline] = None,
    ) -> CalendarListSyncResult:
        request = self.protocol.sync_collection_request(
            home_set, sync_token, props=CALENDAR_PROPS, limit=limit
        )
        multistatus = await self._multistatus(request, "sync", deadline)
        with error.in_phase("sync"):
            return sync_ops.process_calendar_list_sync(multistatus, home_set)

    # Calendar objects

    async def get_calendar_object(
        self, path: str, deadline: Optional[Deadline] = None
    ) -> CalendarObject:
        request = self.protocol.get_request(path)
        response = await self.request(request, "crud", deadline)
        with error.in_phase("crud"):
            calendar_ops.check_content_type(response, request.url)
            obj = CalendarObject(path=href_to_path(response.url or path), data=response.body)
            return calendar_ops.populate_from_headers(obj, response)

    async def put_calendar_object(
        self,
        path: str,
        data: Union[str, bytes],
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> CalendarObject:
        request = self.protocol.put_request(
            path, to_wire(data), if_match=if_match, if_none_match=if_none_match
        )
        response = await self.request(request, "crud", deadline)
        with error.in_phase("crud"):
            obj = CalendarObject(path=href_to_path(path), data=to_wire(data))
            return calendar_ops.populate_from_headers(obj, response)

    async def delete_calendar_object(
        self,
        path: str,
        if_match: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> None:
        request = self.protocol.delete_request(path, if_match=if_match)
        await self.request(request, "crud", deadline)

    async def calendar_query(
        self,
        path: str,
        query: CalendarQueryRequest,
        deadline: Optional[Deadline] = None,
    ) -> List[CalendarObject]:
        return await self._calendar_query(path, query, "query", deadline)

    async def _calendar_query(
        self,
        path: str,
        query: CalendarQueryRequest,
        phase: str,
        deadline: Optional[Deadline],
    ) -> List[CalendarObject]:
        request = self.protocol.calendar_query_request(path, query)
        multistatus = await self._multistatus(request, phase, deadline)
        with error.in_phase(phase):
            return calendar_ops.process_objects(multistatus, request.url)

    async def calendar_multiget(
        self,
        paths: List[str],
        comp_request: Optional[CalendarCompRequest] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[CalendarObject]:
        return await self._calendar_multiget(paths, comp_request, "query", deadline)

    async def _calendar_multiget(
        self,
        paths: List[str],
        comp_request: Optional[CalendarCompRequest],
        phase: str,
        deadline: Optional[Deadline],
        collection: Optional[str] = None,
    ) -> List[CalendarObject]:
        if not paths:
            return []
        request = self.protocol.calendar_multiget_request(
            collection or parent_collection(paths[0]), paths, comp_request
        )
        multistatus = await self._multistatus(request, phase, deadline)
        with error.in_phase(phase):
            return calendar_ops.process_objects(multistatus, request.url)

    async def list_calendar_objects(
        self,
        path: str,
        fetch_data: bool = False,
        deadline: Optional[Deadline] = None,
    ) -> List[CalendarObject]:
        request = self.protocol.propfind_request(path, OBJECT_PROPS, depth=1)
        multistatus = await self._multistatus(request, "query", deadline)
        with error.in_phase("query"):
            objects, paths = calendar_ops.process_object_listing(multistatus, path)
        if fetch_data and paths:
            return await self._calendar_multiget(
                paths, FULL_COMP_REQUEST, "query", deadline, collection=path
            )
        return objects

    # Time range queries

    async def calendar_query_range(
        self,
        path: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[CalendarObject]:
        """
        All events in the calendar intersecting [start, end).  See
        DAVClient.calendar_query_range.  Windows are queried one at a
        time, in order.
        """
        start, end = query_ops.validate_time_range(start, end)
        if start is None or end is None:
            return await self._query_range_once(path, start, end, deadline)

        merger = query_ops.ResultMerger()
        for window_start, window_end in query_ops.split_time_range(
            start, end, self.range_window
        ):
            await self._query_range_window(
                path, window_start, window_end, merger, deadline
            )
        return merger.objects

    async def _query_range_window(
        self,
        path: str,
        start: datetime,
        end: datetime,
        merger: query_ops.ResultMerger,
        deadline: Optional[Deadline],
    ) -> None:
        try:
            objects = await self._query_range_once(path, start, end, deadline)
        except error.InsufficientStorageError as e:
            if not query_ops.should_bisect(e, start, end, self.min_range_window):
                raise
            log.debug("window %s - %s too large for the server, bisecting", start, end)
        else:
            merger.add(objects)
            return

        for half_start, half_end in query_ops.bisect(start, end):
            await self._query_range_window(path, half_start, half_end, merger, deadline)

    async def _query_range_once(
        self,
        path: str,
        start: Optional[datetime],
        end: Optional[datetime],
        deadline: Optional[Deadline],
    ) -> List[CalendarObject]:
        log.debug("querying %s for %s - %s", path, start, end)
        query = query_ops.build_range_query(start, end)
        return await self._calendar_query(path, query, "query", deadline)

    # Sync

    async def sync_calendar(
        self,
        path: str,
        query: Optional[SyncQuery] = None,
        deadline: Optional[Deadline] = None,
    ) -> SyncResponse:
        """
        Changes to the objects of a calendar.  See DAVClient.sync_calendar.
        """
        query = query or SyncQuery()
        comp_request = standard_comp_request()
        request = self.protocol.sync_collection_request(
            path,
            query.sync_token,
            limit=query.limit,
            prop=build_calendar_data_prop(comp_request),
        )
        multistatus = await self._multistatus(request, "sync", deadline)

        accumulator = sync_ops.SyncAccumulator(path, query, multistatus.sync_token)
        with error.in_phase("sync"):
            accumulator.add_all(multistatus.responses)

        if accumulator.pending:
            log.debug(
                "fetching calendar-data of %i objects missing it", len(accumulator.pending)
            )
            fetched = await self._calendar_multiget(
                accumulator.pending_paths,
                comp_request,
                "backfill",
                deadline,
                collection=path,
            )
            accumulator.complete_backfill(fetched)
        return accumulator.result()


async def get_davclient(
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **params: Any,
) -> Optional[AsyncDAVClient]:
    """
    Get an async DAV client instance, configured the same way as
    caldav_sync.davclient.get_davclient.  It will not try to connect.

    Example:
        async with await get_davclient(url="...", username="...", password="...") as client:
            principal = await client.find_current_user_principal()
    """
    from caldav_sync import config

    conn_params = config.get_connection_params(
        config_file, config_section, environment, **params
    )
    if conn_params:
        return AsyncDAVClient(**conn_params)
    return None
