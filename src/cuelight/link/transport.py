"""Transport interface used by the device link."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """
    Raw request/response channel to the lighting module.

    Implementations raise their native exceptions (e.g. ``requests``
    exceptions); the device link translates them into the link taxonomy.
    """

    @property
    def address(self) -> str:
        """Human-readable address of the module."""
        ...

    def open(self) -> None:
        """Prepare the channel. Called before every (re)connect attempt."""
        ...

    def close(self) -> None:
        """Release the channel."""
        ...

    def request(self, method: str, path: str, body: dict | None, timeout_s: float) -> dict:
        """
        Perform one request and return the decoded JSON reply.

        Args:
            method: HTTP-style method ("GET" or "POST")
            path: Resource path on the module
            body: JSON body, if any
            timeout_s: Bound on the transaction (seconds)
        """
        ...
