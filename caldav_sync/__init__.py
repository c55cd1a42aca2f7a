#!/usr/bin/env python
import logging

__version__ = "0.1.0"

from .davclient import DAVClient
from .davclient import get_davclient
from .async_davclient import AsyncDAVClient

## Silence notification of no default logging handler
log = logging.getLogger("caldav_sync")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = ["__version__", "DAVClient", "AsyncDAVClient", "get_davclient"]
