#!/usr/bin/env python
from typing import Dict
from typing import Optional

nsmap: Dict[str, str] = {
    "D": "DAV:",
    "C": "urn:ietf:params:xml:ns:caldav",
}

## calendar-color isn't described in any RFC, but most servers
## support it.  We don't want to ship it in the namespace list of
## every request, hence the separate map.
nsmap2: Dict[str, str] = nsmap.copy()
nsmap2["I"] = "http://apple.com/ns/ical/"


def ns(prefix: str, tag: Optional[str] = None) -> str:
    name = "{%s}" % nsmap2[prefix]
    if tag is not None:
        name = "%s%s" % (name, tag)
    return name
