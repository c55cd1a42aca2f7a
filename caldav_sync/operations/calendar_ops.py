"""
Calendar operations - Sans-I/O business logic for calendars and their
objects.

Processing of discovery, listing, multiget and PROPPATCH results, plus
the header handling of single-object GET/PUT.
"""
import logging
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

from caldav_sync.elements import cdav
from caldav_sync.elements import dav
from caldav_sync.lib import error
from caldav_sync.lib.url import href_to_path
from caldav_sync.lib.url import same_collection_path
from caldav_sync.protocol.operations import MIME_TYPE
from caldav_sync.protocol.types import Calendar
from caldav_sync.protocol.types import CalendarObject
from caldav_sync.protocol.types import DAVResponse
from caldav_sync.protocol.types import MultistatusResponse
from caldav_sync.protocol.xml_parsers import decode_calendar
from caldav_sync.protocol.xml_parsers import decode_calendar_object
from caldav_sync.protocol.xml_parsers import parse_http_date
from caldav_sync.protocol.xml_parsers import unquote_etag
from caldav_sync.protocol.xml_parsers import UNAUTHENTICATED

log = logging.getLogger(__name__)


def check_calendar(calendar: Calendar) -> Calendar:
    if calendar.max_resource_size < 0:
        raise error.ConsistencyError(
            url=calendar.path,
            reason="max-resource-size must be a positive integer",
        )
    return calendar


# Discovery


def extract_principal(multistatus: MultistatusResponse, url: str) -> str:
    """
    Find the current-user-principal in a depth 0 PROPFIND result.

    Raises:
        AuthorizationError: if the server says we're unauthenticated
        NotFoundError: if the property is missing
    """
    value = _single_property(multistatus, dav.CurrentUserPrincipal.tag)
    if value == UNAUTHENTICATED:
        raise error.AuthorizationError(url=url, reason="unauthenticated")
    if not value:
        raise error.NotFoundError(url=url, reason="no current-user-principal")
    return value


def extract_calendar_home_set(multistatus: MultistatusResponse, url: str) -> str:
    value = _single_property(multistatus, cdav.CalendarHomeSet.tag)
    if not value or value == UNAUTHENTICATED:
        raise error.NotFoundError(url=url, reason="no calendar-home-set")
    return value


def _single_property(multistatus: MultistatusResponse, tag: str) -> Optional[str]:
    for result in multistatus.responses:
        if tag in result.properties:
            return result.properties[tag]
    return None


# Calendars


def process_calendars(multistatus: MultistatusResponse) -> List[Calendar]:
    """
    The calendar collections in a PROPFIND result.  Anything that is not
    a calendar (the home set itself, other collections) is left out.
    """
    calendars = []
    for result in multistatus.responses:
        if result.status == 404:
            continue
        calendar = decode_calendar(result)
        if calendar is None:
            continue
        calendars.append(check_calendar(calendar))
    return calendars


def process_calendar(multistatus: MultistatusResponse, path: str) -> Calendar:
    for result in multistatus.responses:
        if result.status == 404:
            continue
        calendar = decode_calendar(result)
        if calendar is not None:
            return check_calendar(calendar)
    raise error.NotFoundError(url=path, reason="not a calendar")


def build_calendar_update(
    name: Optional[str] = None,
    description: Optional[str] = None,
    color: Optional[str] = None,
    timezone: Optional[str] = None,
) -> Dict[str, str]:
    """
    The properties to send in a PROPPATCH.  None means "leave alone",
    an empty string is a legal new value.

    Raises:
        ValueError: if there is nothing to update
    """
    props = {}
    if name is not None:
        props["displayname"] = name
    if description is not None:
        props["calendar-description"] = description
    if color is not None:
        props["calendar-color"] = color
    if timezone is not None:
        props["calendar-timezone"] = timezone
    if not props:
        raise ValueError("no properties to update")
    return props


def check_proppatch(multistatus: MultistatusResponse, url: str) -> None:
    """
    Raises:
        ProppatchError: if the server rejected any of the properties
        ResponseError: if there isn't exactly one response element
    """
    if len(multistatus.responses) != 1:
        raise error.ResponseError(
            url=url,
            reason="expected 1 response, got %i" % len(multistatus.responses),
        )
    result = multistatus.responses[0]
    if not 200 <= result.status < 300:
        raise error.ProppatchError(url=url, reason="status %i" % result.status)
    for tag, status in result.property_status.items():
        if not 200 <= status < 300:
            raise error.ProppatchError(
                url=url, reason="property %s was not updated, status %i" % (tag, status)
            )


# Calendar objects


def process_objects(multistatus: MultistatusResponse, url: str) -> List[CalendarObject]:
    """
    CalendarObjects from a calendar-query or calendar-multiget report.

    Raises:
        NotFoundError: if the server reports one of the objects missing
    """
    objects = []
    for result in multistatus.responses:
        if result.status == 404:
            raise error.NotFoundError(url=result.href or url, reason="404 Not Found")
        objects.append(decode_calendar_object(result))
    return objects


def process_object_listing(
    multistatus: MultistatusResponse, path: str
) -> Tuple[List[CalendarObject], List[str]]:
    """
    Split a depth 1 PROPFIND on a calendar into its objects.

    The collection itself, and child resources with a non-empty
    resourcetype (sub-collections), are skipped.

    Returns:
        (objects, paths): metadata-only objects and their paths
    """
    objects = []
    paths = []
    for result in multistatus.responses:
        if result.status == 404:
            continue
        if same_collection_path(result.href, path):
            continue
        if result.properties.get(dav.ResourceType.tag):
            continue
        objects.append(decode_calendar_object(result))
        paths.append(result.href)
    return objects, paths


def check_content_type(response: DAVResponse, url: str) -> None:
    content_type = response.header("Content-Type") or ""
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != MIME_TYPE:
        raise error.ResponseError(
            url=url,
            reason="expected Content-Type %r, got %r" % (MIME_TYPE, media_type),
        )


def populate_from_headers(obj: CalendarObject, response: DAVResponse) -> CalendarObject:
    """
    Fill in path, etag, content length and modification time from the
    headers of a GET or PUT response, where present.
    """
    location = response.header("Location")
    if location:
        obj.path = href_to_path(location)
    etag = response.header("ETag")
    if etag:
        obj.etag = unquote_etag(etag)
    content_length = response.header("Content-Length")
    if content_length:
        try:
            obj.content_length = int(content_length)
        except ValueError:
            raise error.ResponseError(
                url=obj.path, reason="bad Content-Length %r" % content_length
            )
    last_modified = response.header("Last-Modified")
    if last_modified:
        obj.mod_time = parse_http_date(last_modified)
    return obj
