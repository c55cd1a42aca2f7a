"""
Pure functions for parsing CalDAV XML responses.

All functions in this module are pure - they take XML bytes (or
already parsed results) in and return structured data out, with no
side effects or I/O.
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from lxml import etree
from lxml.etree import _Element

from caldav_sync.elements import cdav, dav, ical
from caldav_sync.lib import error
from caldav_sync.lib.url import href_to_path

from .types import Calendar, CalendarObject, MultistatusResponse, PropfindResult

log = logging.getLogger(__name__)

## marker value for a current-user-principal holding D:unauthenticated
UNAUTHENTICATED = dav.Unauthenticated.tag


def parse_multistatus(
    body: bytes,
    huge_tree: bool = False,
) -> MultistatusResponse:
    """
    Parse a 207 Multi-Status response body.

    Args:
        body: Raw XML response bytes
        huge_tree: Allow parsing very large XML documents

    Returns:
        Structured MultistatusResponse with parsed results

    Raises:
        ResponseError: If the body is not valid XML, or a response
            element carries an unexpected status
    """
    if not body:
        return MultistatusResponse()

    parser = etree.XMLParser(huge_tree=huge_tree)
    try:
        tree = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise error.ResponseError(reason=f"invalid XML in response: {e}") from e

    responses: list[PropfindResult] = []
    sync_token: str | None = None

    for elem in _strip_to_multistatus(tree):
        if elem.tag == dav.SyncToken.tag:
            sync_token = elem.text
            continue

        if elem.tag != dav.Response.tag:
            continue

        href, propstats, status = _parse_response_element(elem)
        properties, property_status = _extract_properties(propstats)
        responses.append(
            PropfindResult(
                href=href,
                properties=properties,
                property_status=property_status,
                status=_status_to_code(status),
            )
        )

    return MultistatusResponse(responses=responses, sync_token=sync_token)


# Decoding into the calendar data model


def decode_calendar_object(result: PropfindResult, path: str | None = None) -> CalendarObject:
    """
    Build a CalendarObject from the properties of a response element.

    calendar-data may be missing, as iCloud leaves it out of
    sync-collection responses.  data is None in that case.
    """
    props = result.properties
    data = props.get(cdav.CalendarData.tag)
    return CalendarObject(
        path=path if path is not None else result.href,
        mod_time=parse_http_date(props.get(dav.GetLastModified.tag)),
        content_length=_to_int(props.get(dav.GetContentLength.tag), "getcontentlength"),
        etag=unquote_etag(props.get(dav.GetEtag.tag)),
        data=data.encode("utf-8") if data else None,
    )


def decode_calendar(result: PropfindResult, assume_calendar: bool = False) -> Calendar | None:
    """
    Build a Calendar from the properties of a collection response element.

    Returns None if the resource type is known and is not a calendar.
    When the resource type is missing, the resource is taken to be a
    calendar only if assume_calendar is set (a sync-collection on a
    known calendar, where iCloud doesn't return the full property set).
    """
    props = result.properties
    resource_type = props.get(dav.ResourceType.tag)
    if resource_type is None:
        if not assume_calendar:
            return None
    elif cdav.Calendar.tag not in _as_list(resource_type):
        return None

    return Calendar(
        path=result.href,
        name=props.get(dav.DisplayName.tag) or "",
        description=props.get(cdav.CalendarDescription.tag) or "",
        max_resource_size=_to_int(props.get(cdav.MaxResourceSize.tag), "max-resource-size"),
        supported_component_set=_as_list(props.get(cdav.SupportedCalendarComponentSet.tag)),
        color=props.get(ical.CalendarColor.tag) or "",
        timezone=props.get(cdav.CalendarTimeZone.tag) or "",
        sync_token=props.get(dav.SyncToken.tag) or "",
        current_user_privileges=_as_list(props.get(dav.CurrentUserPrivilegeSet.tag)),
    )


def parse_http_date(value: str | None) -> datetime | None:
    """
    Parse an RFC 1123 date like "Mon, 02 Oct 2023 12:00:00 GMT".

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    try:
        ret = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        log.debug("unparseable http date %r", value)
        return None
    if ret.tzinfo is None:
        ret = ret.replace(tzinfo=timezone.utc)
    return ret.astimezone(timezone.utc)


def unquote_etag(etag: str | None) -> str:
    if not etag:
        return ""
    etag = etag.strip()
    if len(etag) >= 2 and etag.startswith('"') and etag.endswith('"'):
        return etag[1:-1]
    return etag


# Helper functions


def _to_int(value: Any, name: str) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(str(value).strip())
    except ValueError:
        raise error.ResponseError(reason=f"{name} is not an integer: {value!r}")


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _strip_to_multistatus(tree: _Element) -> _Element | list[_Element]:
    """
    Strip outer elements to get to the multistatus content.

    The general format is:
        <xml><multistatus>
            <response>...</response>
            <response>...</response>
        </multistatus></xml>

    But sometimes multistatus and/or xml element is missing.
    Returns the element(s) containing responses.
    """
    if tree.tag == "xml" and len(tree) > 0 and tree[0].tag == dav.MultiStatus.tag:
        return tree[0]
    if tree.tag == dav.MultiStatus.tag:
        return tree
    return [tree]


def _parse_response_element(
    response: _Element,
) -> tuple[str, list[_Element], str | None]:
    """
    Parse a single DAV:response element.

    Returns:
        Tuple of (href, propstat elements list, status string)
    """
    status: str | None = None
    href: str | None = None
    propstats: list[_Element] = []

    for elem in response:
        if elem.tag == dav.Status.tag:
            status = elem.text
            _validate_status(status)
        elif elem.tag == dav.Href.tag:
            href = href_to_path(elem.text)
        elif elem.tag == dav.PropStat.tag:
            propstats.append(elem)

    return (href or "", propstats, status)


def _extract_properties(
    propstats: list[_Element],
) -> tuple[dict[str, Any], dict[str, int]]:
    """
    Extract properties from propstat elements.

    Returns:
        (properties, property_status): property tag -> value for all
        properties with a 2xx status, and property tag -> status code
        for every property mentioned
    """
    properties: dict[str, Any] = {}
    property_status: dict[str, int] = {}

    for propstat in propstats:
        status_elem = propstat.find(dav.Status.tag)
        code = _status_to_code(status_elem.text if status_elem is not None else None)

        prop = propstat.find(dav.Prop.tag)
        if prop is None:
            continue

        for child in prop:
            property_status[child.tag] = code
            if 200 <= code < 300:
                properties[child.tag] = _element_to_value(child)

    return properties, property_status


def _element_to_value(elem: _Element) -> Any:
    """
    Convert an XML property element to a Python value.

    For simple elements, returns text content.
    Handles the CalDAV elements with structured content.
    """
    tag = elem.tag

    if tag == dav.ResourceType.tag:
        return [child.tag for child in elem]

    if tag == cdav.SupportedCalendarComponentSet.tag:
        return [child.get("name") for child in elem if child.get("name")]

    if tag == dav.CurrentUserPrivilegeSet.tag:
        ## <privilege><read/></privilege><privilege><write/></privilege>
        names = []
        for privilege in elem:
            for child in privilege:
                names.append(etree.QName(child).localname)
        return names

    if tag in (dav.CurrentUserPrincipal.tag, cdav.CalendarHomeSet.tag):
        for child in elem:
            if child.tag == dav.Href.tag and child.text:
                return href_to_path(child.text)
            if child.tag == dav.Unauthenticated.tag:
                return UNAUTHENTICATED
        return None

    if len(elem) == 0:
        return elem.text

    # Generic handling for elements with children
    children_texts = []
    for child in elem:
        if child.text:
            children_texts.append(child.text)
        elif child.get("name"):
            children_texts.append(child.get("name"))
        elif len(child) == 0:
            children_texts.append(child.tag)

    if len(children_texts) == 1:
        return children_texts[0]
    elif children_texts:
        return children_texts

    return elem


def _validate_status(status: str | None) -> None:
    """
    Validate a status string like "HTTP/1.1 404 Not Found".

    200, 201, 207, and 404 are considered acceptable statuses.

    Raises:
        ResponseError: If status indicates an error
    """
    if status is None:
        return

    acceptable = (" 200 ", " 201 ", " 207 ", " 404 ")
    if not any(code in status + " " for code in acceptable):
        raise error.ResponseError(reason=status)


def _status_to_code(status: str | None) -> int:
    """
    Extract status code from status string like "HTTP/1.1 200 OK".

    Returns:
        Integer status code (defaults to 200 if parsing fails)
    """
    if not status:
        return 200

    parts = status.split()
    if len(parts) >= 2:
        try:
            return int(parts[1])
        except ValueError:
            pass

    return 200
