"""
The interface DAVClient and AsyncDAVClient expect from a transport.

Tests replace ``client.io.execute`` with a Mock; anything else that
provides these two methods can be used as well.
"""

from typing import Optional, Protocol, runtime_checkable

from caldav_sync.protocol.types import DAVRequest, DAVResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """Blocking transport, see SyncIO"""

    def execute(
        self, request: DAVRequest, timeout: Optional[float] = None
    ) -> DAVResponse:
        """
        Send the request and return the response, whatever its status.

        timeout is in seconds and overrides the transport default for
        this request only.  Errors from the HTTP library are raised
        as they are.
        """
        ...

    def close(self) -> None: ...


@runtime_checkable
class AsyncIOProtocol(Protocol):
    """asyncio transport, see AsyncIO"""

    async def execute(
        self, request: DAVRequest, timeout: Optional[float] = None
    ) -> DAVResponse:
        """Like SyncIOProtocol.execute, as a coroutine"""
        ...

    async def close(self) -> None: ...
