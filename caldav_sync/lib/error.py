#!/usr/bin/env python
import logging
import os
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Type

## Environmental variables prepended with "PYTHON_CALDAV_SYNC" are used for
## debug purposes, environmental variables prepended with "CALDAV_" are for
## connection parameters
debug_dump_communication = bool(os.environ.get("PYTHON_CALDAV_SYNC_COMMDUMP", False))

log = logging.getLogger("caldav_sync")


def errmsg(r) -> str:
    """Utility for formatting an error response to an error string"""
    return "%s %s\n\n%s" % (r.status, r.reason, r.body)


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"
    ## which part of the client failed: discovery, query, sync, backfill or crud
    phase: Optional[str] = None

    def __init__(
        self,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        if phase:
            self.phase = phase

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class AuthorizationError(DAVError):
    """
    The client encountered an HTTP 401 or 403 error and is passing it on
    to the user. The url property will contain the url in question,
    the reason property will contain the excuse the server sent.
    """

    pass


class ProppatchError(DAVError):
    pass


class PropfindError(DAVError):
    pass


class ReportError(DAVError):
    pass


class InsufficientStorageError(ReportError):
    """
    HTTP 507.  Servers use it to tell that a REPORT would yield more
    results than they are willing to deliver in one response.
    """

    pass


class PutError(DAVError):
    pass


class DeleteError(DAVError):
    pass


class NotFoundError(DAVError):
    pass


class PreconditionFailedError(DAVError):
    """
    HTTP 412 - the ETag given in If-Match / If-None-Match did not
    match the current state of the resource.
    """

    pass


class ConsistencyError(DAVError):
    pass


class ResponseError(DAVError):
    pass


class DiscoveryError(DAVError):
    """Raised when service discovery fails"""

    phase = "discovery"


class TransportError(DAVError):
    """
    The request never got a response: connection failure, timeout or
    another error in the HTTP library.  The original exception is
    chained as ``__cause__``.
    """

    pass


class CancelledError(DAVError):
    reason = "operation cancelled"


class DeadlineExceededError(CancelledError):
    reason = "deadline exceeded"


exception_by_method: Dict[str, Type[DAVError]] = defaultdict(lambda: DAVError)
for method in (
    "delete",
    "put",
    "report",
    "propfind",
    "proppatch",
):
    exception_by_method[method] = locals()[method[0].upper() + method[1:] + "Error"]

exception_by_status: Mapping[int, Type[DAVError]] = {
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFoundError,
    412: PreconditionFailedError,
    507: InsufficientStorageError,
}


def raise_for_status(
    response,
    method: str,
    url: Optional[str] = None,
    phase: Optional[str] = None,
) -> None:
    """
    Raise the DAVError subclass matching the status of a DAVResponse.
    Does nothing on 2xx.
    """
    if response.ok:
        return
    cls = exception_by_status.get(response.status) or exception_by_method[
        method.lower()
    ]
    raise cls(
        url=url,
        reason="%s %s" % (response.status, response.reason),
        phase=phase,
    )


@contextmanager
def in_phase(phase: str) -> Iterator[None]:
    """
    Tag DAVErrors raised inside the block with the phase they belong to,
    unless they already carry one.  The exception itself is re-raised
    unchanged.
    """
    try:
        yield
    except DAVError as e:
        if e.phase is None:
            e.phase = phase
        raise
