#!/usr/bin/env python
"""
Unit tests for async_davclient module.

Rule: None of the tests in this file should initiate any internet
communication.  ``client.io.execute`` is replaced by an AsyncMock.
"""
import asyncio
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from unittest.mock import AsyncMock

import aiohttp
import pytest
from lxml import etree

from caldav_sync import AsyncDAVClient
from caldav_sync.async_davclient import get_davclient
from caldav_sync.io import AsyncIOProtocol
from caldav_sync.lib import error
from caldav_sync.lib.deadline import Deadline
from caldav_sync.protocol import DAVResponse
from caldav_sync.protocol import SyncQuery

utc = timezone.utc
C = "{urn:ietf:params:xml:ns:caldav}"
D = "{DAV:}"

URL = "https://cal.example.com/dav/"
CAL = "/dav/calendars/alice/work/"

ICAL = (
    "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nBEGIN:VEVENT\r\nUID:x@example.com\r\n"
    "DTSTART:20240101T100000Z\r\nDTEND:20240101T110000Z\r\nEND:VEVENT\r\nEND:VCALENDAR\r\n"
)


def object_entry(href, etag="1", data=None, lastmod=None):
    props = f"<D:getetag>&quot;{etag}&quot;</D:getetag>"
    if lastmod:
        props += f"<D:getlastmodified>{lastmod}</D:getlastmodified>"
    if data:
        props += f"<C:calendar-data>{data}</C:calendar-data>"
    return (
        f"<D:response><D:href>{href}</D:href><D:propstat><D:prop>{props}</D:prop>"
        "<D:status>HTTP/1.1 200 OK</D:status></D:propstat></D:response>"
    )


def multistatus(*entries, sync_token=None):
    token = f"<D:sync-token>{sync_token}</D:sync-token>" if sync_token else ""
    body = (
        '<D:multistatus xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">'
        + "".join(entries)
        + token
        + "</D:multistatus>"
    )
    return DAVResponse(status=207, headers={}, body=body.encode("utf-8"))


def status(code, headers=None, body=b""):
    return DAVResponse(status=code, headers=headers or {}, body=body)


def window_of(request):
    root = etree.fromstring(request.body)
    time_range = root.find(f"{C}filter/{C}comp-filter/{C}comp-filter/{C}time-range")
    return time_range.get("start"), time_range.get("end")


def ts(*args):
    return datetime(*args, tzinfo=utc)


def make_client(**kwargs):
    client = AsyncDAVClient(url=URL, username="alice", password="secret", **kwargs)
    client.io.execute = AsyncMock()
    return client


def sent(client):
    return [call.args[0] for call in client.io.execute.call_args_list]


class TestAsyncDAVClient:
    """Basic operations of the async client."""

    def test_init(self):
        client = AsyncDAVClient(url="https://bob:pw@cal.example.com/dav/", timeout=60)
        assert client.url == "https://cal.example.com/dav/"
        assert client.username == "bob"
        assert client.protocol._auth_header is not None
        assert client.io.timeout.total == 60
        assert isinstance(client.io, AsyncIOProtocol)

    def test_windows_must_be_positive(self):
        with pytest.raises(ValueError):
            AsyncDAVClient(url=URL, min_range_window=0)

    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with make_client() as client:
            assert client.protocol is not None

    @pytest.mark.asyncio
    async def test_get_davclient(self):
        client = await get_davclient(url=URL, environment=False)
        assert isinstance(client, AsyncDAVClient)
        await client.close()

    @pytest.mark.asyncio
    async def test_find_current_user_principal(self):
        client = make_client()
        client.io.execute.return_value = DAVResponse(
            status=207,
            headers={},
            body=b"""<D:multistatus xmlns:D="DAV:"><D:response><D:href>/dav/</D:href>
            <D:propstat><D:prop><D:current-user-principal><D:href>/dav/principals/alice/</D:href>
            </D:current-user-principal></D:prop><D:status>HTTP/1.1 200 OK</D:status>
            </D:propstat></D:response></D:multistatus>""",
        )
        assert await client.find_current_user_principal() == "/dav/principals/alice/"
        await client.close()

    @pytest.mark.asyncio
    async def test_put_and_delete(self):
        client = make_client()
        client.io.execute.side_effect = [status(201, {"ETag": '"v1"'}), status(204)]
        obj = await client.put_calendar_object(CAL + "a.ics", ICAL, if_none_match="*")
        assert obj.etag == "v1"
        await client.delete_calendar_object(CAL + "a.ics", if_match="v1")
        put, delete = sent(client)
        assert put.headers["If-None-Match"] == "*"
        assert delete.headers["If-Match"] == '"v1"'
        await client.close()

    @pytest.mark.asyncio
    async def test_precondition_failed(self):
        client = make_client()
        client.io.execute.return_value = status(412)
        with pytest.raises(error.PreconditionFailedError) as excinfo:
            await client.put_calendar_object(CAL + "a.ics", ICAL, if_match="old")
        assert excinfo.value.phase == "crud"
        await client.close()


class TestAsyncCalendarQueryRange:
    """The windowed time range query engine, async flavour."""

    @pytest.mark.asyncio
    async def test_invalid_range(self):
        client = make_client()
        with pytest.raises(ValueError):
            await client.calendar_query_range(CAL, ts(2024, 2, 1), ts(2024, 1, 1))
        client.io.execute.assert_not_called()
        await client.close()

    @pytest.mark.asyncio
    async def test_bisects_and_merges(self):
        client = make_client(range_window=timedelta(days=2))
        client.io.execute.side_effect = [
            status(507),
            multistatus(object_entry(CAL + "a.ics", etag="1", data=ICAL)),
            multistatus(object_entry(CAL + "a.ics", etag="2", data=ICAL)),
            multistatus(object_entry(CAL + "b.ics", data=ICAL)),
        ]
        objects = await client.calendar_query_range(CAL, ts(2024, 1, 1), ts(2024, 1, 5))
        assert [window_of(r) for r in sent(client)] == [
            ("20240101T000000Z", "20240103T000000Z"),
            ("20240101T000000Z", "20240102T000000Z"),
            ("20240102T000000Z", "20240103T000000Z"),
            ("20240103T000000Z", "20240105T000000Z"),
        ]
        assert [(o.path, o.etag) for o in objects] == [
            (CAL + "a.ics", "2"),
            (CAL + "b.ics", "1"),
        ]
        await client.close()

    @pytest.mark.asyncio
    async def test_gives_up_at_min_window(self):
        client = make_client(range_window=timedelta(days=1))
        client.io.execute.return_value = status(507)
        with pytest.raises(error.InsufficientStorageError) as excinfo:
            await client.calendar_query_range(CAL, ts(2024, 1, 1), ts(2024, 1, 3))
        assert excinfo.value.phase == "query"
        assert client.io.execute.call_count == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_deadline_aborts_request_in_flight(self):
        client = make_client()

        async def slow(request, timeout=None):
            await asyncio.sleep(10)

        client.io.execute.side_effect = slow
        deadline = Deadline.after(0.01)
        with pytest.raises(error.DeadlineExceededError) as excinfo:
            await client.calendar_query_range(
                CAL, ts(2024, 1, 1), ts(2024, 1, 2), deadline=deadline
            )
        assert excinfo.value.phase == "query"
        await client.close()

    @pytest.mark.asyncio
    async def test_cancel_stops_remaining_windows(self):
        client = make_client(range_window=timedelta(days=1))
        deadline = Deadline()

        async def server(request, timeout=None):
            deadline.cancel()
            return multistatus()

        client.io.execute.side_effect = server
        with pytest.raises(error.CancelledError):
            await client.calendar_query_range(
                CAL, ts(2024, 1, 1), ts(2024, 1, 4), deadline=deadline
            )
        assert client.io.execute.call_count == 1
        await client.close()


class TestAsyncSyncCalendar:
    """The sync-collection engine, async flavour."""

    @pytest.mark.asyncio
    async def test_classifies_entries(self):
        client = make_client()
        client.io.execute.return_value = multistatus(
            object_entry(CAL + "a.ics", data=ICAL),
            "<D:response><D:href>%sgone.ics</D:href>"
            "<D:status>HTTP/1.1 404 Not Found</D:status></D:response>" % CAL,
            sync_token="t2",
        )
        result = await client.sync_calendar(CAL, SyncQuery(sync_token="t1"))
        assert result.sync_token == "t2"
        assert [o.path for o in result.updated] == [CAL + "a.ics"]
        assert result.deleted == [CAL + "gone.ics"]
        await client.close()

    @pytest.mark.asyncio
    async def test_backfill(self):
        client = make_client()
        client.io.execute.side_effect = [
            multistatus(
                object_entry(CAL + "early.ics", lastmod="Mon, 02 Oct 2023 10:00:00 GMT"),
                object_entry(CAL + "late.ics", lastmod="Mon, 02 Oct 2023 14:00:00 GMT"),
                sync_token="t1",
            ),
            multistatus(object_entry(CAL + "early.ics"), object_entry(CAL + "late.ics")),
        ]
        result = await client.sync_calendar(CAL, SyncQuery(start_time=ts(2023, 10, 2, 12)))
        assert [o.path for o in result.updated] == [CAL + "late.ics"]
        multiget = sent(client)[1]
        assert etree.QName(etree.fromstring(multiget.body)).localname == "calendar-multiget"
        await client.close()

    @pytest.mark.asyncio
    async def test_backfill_failure_is_tagged(self):
        client = make_client()
        client.io.execute.side_effect = [
            multistatus(object_entry(CAL + "a.ics"), sync_token="t1"),
            status(503),
        ]
        with pytest.raises(error.ReportError) as excinfo:
            await client.sync_calendar(CAL, SyncQuery(start_time=ts(2023, 10, 2, 12)))
        assert excinfo.value.phase == "backfill"
        await client.close()

    @pytest.mark.asyncio
    async def test_backfill_connection_failure_is_tagged(self):
        client = make_client()
        client.io.execute.side_effect = [
            multistatus(object_entry(CAL + "a.ics"), sync_token="t1"),
            aiohttp.ClientConnectionError("connection reset"),
        ]
        with pytest.raises(error.TransportError) as excinfo:
            await client.sync_calendar(CAL, SyncQuery(start_time=ts(2023, 10, 2, 12)))
        assert excinfo.value.phase == "backfill"
        assert isinstance(excinfo.value.__cause__, aiohttp.ClientConnectionError)
        await client.close()

    @pytest.mark.asyncio
    async def test_timeout_without_deadline_is_a_transport_error(self):
        client = make_client()
        client.io.execute.side_effect = asyncio.TimeoutError()
        with pytest.raises(error.TransportError) as excinfo:
            await client.sync_calendar(CAL)
        assert excinfo.value.phase == "sync"
        assert excinfo.value.reason == "TimeoutError"
        await client.close()
