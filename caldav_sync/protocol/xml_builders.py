"""
Pure functions for building CalDAV XML request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.
"""
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from lxml import etree

from caldav_sync.elements import cdav
from caldav_sync.elements import dav
from caldav_sync.elements import ical
from caldav_sync.elements.base import BaseElement

from .types import CalendarCompRequest
from .types import CalendarExpandRequest
from .types import CalendarQueryRequest
from .types import CompFilter
from .types import ParamFilter
from .types import PropFilter
from .types import TextMatch


## Properties requested when looking at calendar collections
CALENDAR_PROPS = [
    "resourcetype",
    "displayname",
    "calendar-description",
    "max-resource-size",
    "supported-calendar-component-set",
    "calendar-color",
    "calendar-timezone",
    "sync-token",
    "current-user-privilege-set",
]

## Properties requested when listing calendar objects without data
OBJECT_PROPS = [
    "getetag",
    "getlastmodified",
    "getcontentlength",
    "resourcetype",
]


def _tostring(root: BaseElement) -> bytes:
    return etree.tostring(root.xmlelement(), encoding="utf-8", xml_declaration=True)


def build_propfind_body(
    props: Optional[List[str]] = None,
    allprop: bool = False,
) -> bytes:
    """
    Build PROPFIND request body XML.

    Args:
        props: List of property names to retrieve. If None and allprop=False,
               returns minimal propfind.
        allprop: If True, request all properties.

    Returns:
        UTF-8 encoded XML bytes
    """
    if allprop:
        propfind = dav.Propfind() + dav.Allprop()
    elif props:
        prop_elements = []
        for prop_name in props:
            prop_element = _prop_name_to_element(prop_name)
            if prop_element is not None:
                prop_elements.append(prop_element)
        propfind = dav.Propfind() + (dav.Prop() + prop_elements)
    else:
        propfind = dav.Propfind() + dav.Prop()

    return _tostring(propfind)


def build_proppatch_body(
    set_props: Optional[Dict[str, Any]] = None,
) -> bytes:
    """
    Build PROPPATCH request body for setting properties.

    Args:
        set_props: Properties to set (name -> value)

    Returns:
        UTF-8 encoded XML bytes
    """
    propertyupdate = dav.PropertyUpdate()

    if set_props:
        set_elements = []
        for name, value in set_props.items():
            prop_element = _prop_name_to_element(name, value)
            if prop_element is not None:
                set_elements.append(prop_element)
        if set_elements:
            set_element = dav.Set() + (dav.Prop() + set_elements)
            propertyupdate += set_element

    return _tostring(propertyupdate)


# Filter encoding


def encode_text_match(text_match: TextMatch) -> cdav.TextMatch:
    return cdav.TextMatch(text_match.text, negate=text_match.negate_condition)


def encode_param_filter(param_filter: ParamFilter) -> cdav.ParamFilter:
    encoded = cdav.ParamFilter(param_filter.name)
    if param_filter.is_not_defined:
        encoded += cdav.NotDefined()
    if param_filter.text_match is not None:
        encoded += encode_text_match(param_filter.text_match)
    return encoded


def encode_prop_filter(prop_filter: PropFilter) -> cdav.PropFilter:
    encoded = cdav.PropFilter(prop_filter.name)
    if prop_filter.is_not_defined:
        encoded += cdav.NotDefined()
    if prop_filter.start or prop_filter.end:
        encoded += cdav.TimeRange(prop_filter.start, prop_filter.end)
    if prop_filter.text_match is not None:
        encoded += encode_text_match(prop_filter.text_match)
    encoded += [encode_param_filter(pf) for pf in prop_filter.param_filters]
    return encoded


def encode_comp_filter(comp_filter: CompFilter) -> cdav.CompFilter:
    """
    Recursively convert a CompFilter tree into C:comp-filter elements.

    Children keep their order; property filters come before nested
    component filters.
    """
    encoded = cdav.CompFilter(comp_filter.name)
    if comp_filter.is_not_defined:
        encoded += cdav.NotDefined()
    if comp_filter.start or comp_filter.end:
        encoded += cdav.TimeRange(comp_filter.start, comp_filter.end)
    encoded += [encode_prop_filter(pf) for pf in comp_filter.prop_filters]
    encoded += [encode_comp_filter(cf) for cf in comp_filter.comp_filters]
    return encoded


# Calendar data requests


def encode_calendar_comp_request(comp_request: CalendarCompRequest) -> cdav.Comp:
    encoded = cdav.Comp(comp_request.name)
    if comp_request.all_props:
        encoded += cdav.Allprop()
    encoded += [cdav.Prop(name) for name in comp_request.props]
    if comp_request.all_comps:
        encoded += cdav.Allcomp()
    encoded += [encode_calendar_comp_request(c) for c in comp_request.comps]
    return encoded


def encode_expand_request(expand: Optional[CalendarExpandRequest]) -> Optional[cdav.Expand]:
    if expand is None:
        return None
    return cdav.Expand(expand.start, expand.end)


def build_calendar_data_prop(comp_request: Optional[CalendarCompRequest]) -> dav.Prop:
    """
    The D:prop element asking for calendar-data (shaped by comp_request)
    together with the object metadata.
    """
    data = cdav.CalendarData()
    if comp_request is not None:
        data += encode_calendar_comp_request(comp_request)
        expand = encode_expand_request(comp_request.expand)
        if expand is not None:
            data += expand
    return dav.Prop() + [
        data,
        dav.GetLastModified(),
        dav.GetEtag(),
        dav.GetContentLength(),
    ]


def standard_comp_request(
    expand: Optional[CalendarExpandRequest] = None,
) -> CalendarCompRequest:
    """All properties of the VCALENDAR and of its VEVENTs"""
    return CalendarCompRequest(
        name="VCALENDAR",
        all_props=True,
        comps=[CalendarCompRequest(name="VEVENT", all_props=True)],
        expand=expand,
    )


def build_calendar_query_body(query: CalendarQueryRequest) -> bytes:
    """
    Build calendar-query REPORT request body.

    Args:
        query: what to return (comp_request) and what to match (filter)

    Returns:
        UTF-8 encoded XML bytes
    """
    prop = build_calendar_data_prop(query.comp_request)
    filter_elem = cdav.Filter() + encode_comp_filter(query.filter)
    root = cdav.CalendarQuery() + [prop, filter_elem]
    return _tostring(root)


def build_calendar_multiget_body(
    hrefs: List[str],
    comp_request: Optional[CalendarCompRequest] = None,
) -> bytes:
    """
    Build calendar-multiget REPORT request body.

    Used to retrieve multiple calendar objects by their paths in a single request.

    Args:
        hrefs: List of calendar object paths to retrieve
        comp_request: Shape of the calendar-data to return (None for all of it)

    Returns:
        UTF-8 encoded XML bytes
    """
    elements: List[BaseElement] = [build_calendar_data_prop(comp_request)]
    for href in hrefs:
        elements.append(dav.Href(href))

    multiget = cdav.CalendarMultiGet() + elements
    return _tostring(multiget)


def build_sync_collection_body(
    sync_token: Optional[str] = None,
    props: Optional[List[str]] = None,
    sync_level: str = "1",
    limit: int = 0,
    prop: Optional[dav.Prop] = None,
) -> bytes:
    """
    Build sync-collection REPORT request body (RFC 6578).

    Args:
        sync_token: Previous sync token (empty string for initial sync)
        props: Property names to include in response
        sync_level: Sync level ("1" for immediate children)
        limit: Max number of results, <= 0 for no limit
        prop: Prebuilt D:prop element, takes precedence over props

    Returns:
        UTF-8 encoded XML bytes
    """
    elements: List[BaseElement] = [
        dav.SyncToken(sync_token or ""),
        dav.SyncLevel(sync_level),
    ]

    if limit > 0:
        elements.append(dav.Limit() + dav.NResults(str(limit)))

    if prop is None:
        prop_elements = []
        for prop_name in props or []:
            prop_element = _prop_name_to_element(prop_name)
            if prop_element is not None:
                prop_elements.append(prop_element)
        if not prop_elements:
            prop_elements = [dav.GetEtag(), cdav.CalendarData()]
        prop = dav.Prop() + prop_elements
    elements.append(prop)

    sync_collection = dav.SyncCollection() + elements
    return _tostring(sync_collection)


# Property name to element mapping

_dav_props: Dict[str, Any] = {
    "displayname": dav.DisplayName,
    "resourcetype": dav.ResourceType,
    "getetag": dav.GetEtag,
    "getlastmodified": dav.GetLastModified,
    "getcontentlength": dav.GetContentLength,
    "current-user-principal": dav.CurrentUserPrincipal,
    "current-user-privilege-set": dav.CurrentUserPrivilegeSet,
    "sync-token": dav.SyncToken,
}

_caldav_props: Dict[str, Any] = {
    "calendar-data": cdav.CalendarData,
    "calendar-home-set": cdav.CalendarHomeSet,
    "calendar-description": cdav.CalendarDescription,
    "calendar-timezone": cdav.CalendarTimeZone,
    "supported-calendar-component-set": cdav.SupportedCalendarComponentSet,
    "max-resource-size": cdav.MaxResourceSize,
    "calendar-color": ical.CalendarColor,
}


def _prop_name_to_element(
    name: str, value: Optional[Any] = None
) -> Optional[BaseElement]:
    """
    Convert property name string to element object.

    Args:
        name: Property name (case-insensitive)
        value: Optional value for valued elements

    Returns:
        BaseElement instance or None if unknown property
    """
    name_lower = name.lower().replace("_", "-")
    cls = _dav_props.get(name_lower) or _caldav_props.get(name_lower)
    if cls is None:
        return None
    if value is not None:
        try:
            return cls(value)
        except TypeError:
            return cls()
    return cls()
