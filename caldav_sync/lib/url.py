#!/usr/bin/env python
"""
Path helpers.

The clients address everything by server path (``/calendars/user/work/``),
while servers are free to hand back hrefs as absolute URLs, with percent
encoding, or with varying trailing slashes.  The functions below
bring those into a comparable form.
"""
from typing import Optional
from urllib.parse import unquote
from urllib.parse import urljoin
from urllib.parse import urlparse


def normalize_collection_path(path: str) -> str:
    """
    Strip any number of trailing slashes from a collection path.

    The empty path and the root path ``/`` are returned unchanged, so
    they never compare equal to each other.
    """
    if path == "" or path == "/":
        return path
    return path.rstrip("/")


def same_collection_path(a: str, b: str) -> bool:
    """
    True if a and b refer to the same collection, ignoring trailing slashes.

    >>> same_collection_path("/cal/", "/cal")
    True
    >>> same_collection_path("", "/")
    False
    """
    if a == b:
        return True
    return normalize_collection_path(a) == normalize_collection_path(b)


def href_to_path(href: Optional[str]) -> str:
    """
    Convert an href from a multistatus response to an unquoted path.

    Absolute URLs are reduced to their path component.
    """
    text = href or ""
    ## Some servers (Confluence) double-encode the @
    if "%2540" in text:
        text = text.replace("%2540", "%40")
    if "://" in text:
        text = urlparse(text).path
    return unquote(text)


def parent_collection(path: str) -> str:
    """
    Return the collection path (with trailing slash) holding an object path.

    >>> parent_collection("/cal/work/event.ics")
    '/cal/work/'
    """
    idx = path.rfind("/")
    if idx > 0:
        return path[: idx + 1]
    return path


def join(base_url: str, path: str) -> str:
    """
    Resolve a server path (or absolute URL) against the client base URL.
    """
    if not path:
        return base_url
    if urlparse(path).scheme:
        return path
    if not base_url:
        return path
    ## absolute paths replace the path of the base url, relative
    ## paths are appended to it
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path)
