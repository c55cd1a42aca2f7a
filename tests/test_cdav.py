import datetime

from lxml import etree

from caldav_sync.elements import cdav
from caldav_sync.elements import dav
from caldav_sync.elements import ical
from caldav_sync.elements.cdav import _to_utc_date_string
from caldav_sync.elements.cdav import CalendarQuery

SOMEWHERE_REMOTE = datetime.timezone(datetime.timedelta(hours=-2))  # like Fernando de Noronha


def test_element():
    cq = CalendarQuery()
    assert str(cq).startswith("<?xml")
    assert not "xml" in repr(cq)
    assert "CalendarQuery" in repr(cq)
    assert "calendar-query" in str(cq)


def test_to_utc_date_string_date():
    input = datetime.date(2019, 5, 14)
    res = _to_utc_date_string(input)
    assert res == "20190514T000000Z"


def test_to_utc_date_string_utc():
    input = datetime.datetime(2019, 5, 14, 21, 10, 23, 23, tzinfo=datetime.timezone.utc)
    res = _to_utc_date_string(input.astimezone())
    assert res == "20190514T211023Z"


def test_to_utc_date_string_dt_with_tzinfo():
    input = datetime.datetime(2019, 5, 14, 21, 10, 23, 23, tzinfo=SOMEWHERE_REMOTE)
    res = _to_utc_date_string(input)
    assert res == "20190514T231023Z"


def test_to_utc_date_string_naive_dt():
    input = datetime.datetime(2019, 5, 14, 21, 10, 23, 23)
    res = _to_utc_date_string(input)
    exp_dt = input.astimezone(datetime.timezone.utc)
    exp = exp_dt.strftime("%Y%m%dT%H%M%SZ")
    assert res == exp


def test_time_range_open_bounds():
    start = datetime.datetime(2023, 10, 2, 12, tzinfo=datetime.timezone.utc)
    tr = cdav.TimeRange(start=start).xmlelement()
    assert tr.get("start") == "20231002T120000Z"
    assert tr.get("end") is None

    tr = cdav.TimeRange(end=start).xmlelement()
    assert tr.get("start") is None
    assert tr.get("end") == "20231002T120000Z"


def test_expand_mirrors_time_range():
    start = datetime.datetime(2023, 1, 1, tzinfo=datetime.timezone.utc)
    end = datetime.datetime(2023, 4, 1, tzinfo=datetime.timezone.utc)
    expand = cdav.Expand(start, end).xmlelement()
    time_range = cdav.TimeRange(start, end).xmlelement()
    assert expand.tag == cdav.Expand.tag
    assert dict(expand.attrib) == dict(time_range.attrib)


def test_text_match():
    tm = cdav.TextMatch("meeting", negate=True).xmlelement()
    assert tm.text == "meeting"
    assert tm.get("negate-condition") == "yes"
    assert tm.get("collation") == "i;ascii-casemap"
    assert cdav.TextMatch("x").xmlelement().get("negate-condition") == "no"


def test_not_defined_is_empty():
    nd = cdav.NotDefined().xmlelement()
    assert nd.tag == "{urn:ietf:params:xml:ns:caldav}is-not-defined"
    assert len(nd) == 0
    assert nd.text is None


def test_named_element_requires_name():
    try:
        cdav.CompFilter().xmlelement()
    except ValueError:
        pass
    else:
        assert False, "a comp-filter without a name should not serialize"


def test_composition():
    query = cdav.CalendarQuery() + [
        dav.Prop() + [dav.GetEtag(), cdav.CalendarData()],
        cdav.Filter() + cdav.CompFilter("VCALENDAR"),
    ]
    xml = etree.fromstring(str(query).encode("utf-8"))
    assert xml.find(dav.Prop.tag).find(dav.GetEtag.tag) is not None
    assert xml.find(cdav.Filter.tag)[0].get("name") == "VCALENDAR"


def test_calendar_color_namespace():
    color = ical.CalendarColor("#ff0000").xmlelement()
    assert color.tag == "{http://apple.com/ns/ical/}calendar-color"
    assert color.text == "#ff0000"
