"""
HTTP transports for DAVClient (requests) and AsyncDAVClient (aiohttp).

A transport sends one DAVRequest and hands back the DAVResponse, with
the whole body read.  It knows nothing about CalDAV: non-2xx statuses
are returned, not raised, and errors from the HTTP library are left
for the client to wrap as TransportError.

The client passes the timeout of every request explicitly, since it
is capped by the deadline of the operation the request belongs to:

    with SyncIO(verify=True) as io:
        response = io.execute(request, timeout=deadline.timeout(30))
"""

from .base import AsyncIOProtocol, SyncIOProtocol
from .sync import SyncIO
from .async_ import AsyncIO

__all__ = [
    "SyncIOProtocol",
    "AsyncIOProtocol",
    "SyncIO",
    "AsyncIO",
]
