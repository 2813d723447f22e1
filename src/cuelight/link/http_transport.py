"""HTTP transport to the lighting module firmware."""

import logging

import requests

logger = logging.getLogger(__name__)


class HttpTransport:
    """
    JSON over HTTP using a pooled ``requests.Session``.

    The session is rebuilt on every ``open()`` so a reconnect never reuses a
    pooled socket from before the outage.

    Args:
        host: Module IP or hostname
        port: Module HTTP port
    """

    def __init__(self, host: str, port: int = 80):
        self.host = host
        self.port = port
        self._session: requests.Session | None = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def open(self) -> None:
        self.close()
        session = requests.Session()
        session.headers.update({"Accept": "application/json"})
        self._session = session
        logger.debug(f"Opened HTTP session to {self.base_url}")

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def request(self, method: str, path: str, body: dict | None, timeout_s: float) -> dict:
        if self._session is None:
            self.open()

        url = f"{self.base_url}{path}"
        response = self._session.request(method, url, json=body, timeout=timeout_s)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object from {path}, got {type(payload).__name__}")
        return payload
