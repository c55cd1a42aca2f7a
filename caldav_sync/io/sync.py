"""
Synchronous I/O implementation using the requests library.
"""

from typing import Optional, Union

import requests

from caldav_sync.protocol.types import DAVRequest, DAVResponse


class SyncIO:
    """
    Synchronous I/O shell using the requests library.

    This is a thin wrapper that executes DAVRequest objects via HTTP
    and returns DAVResponse objects.

    Example:
        io = SyncIO()
        request = protocol.propfind_request("/calendars/", ["displayname"])
        response = io.execute(request)
        results = protocol.parse_multistatus(response)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 30.0,
        verify: Union[bool, str] = True,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            timeout: Default request timeout in seconds
            verify: Verify SSL certificates, or path to a CA bundle
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def execute(
        self, request: DAVRequest, timeout: Optional[float] = None
    ) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.

        Args:
            request: The request to execute
            timeout: Timeout for this request, defaults to self.timeout

        Returns:
            DAVResponse with status, headers, and body
        """
        response = self.session.request(
            method=request.method.value,
            url=request.url,
            headers=request.headers,
            data=request.body,
            timeout=timeout if timeout is not None else self.timeout,
            verify=self.verify,
        )

        return DAVResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            url=response.url,
        )

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()
