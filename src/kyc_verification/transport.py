from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Tuple

import requests

from .errors import TransportError

Headers = Dict[str, str]

logger = logging.getLogger("kyc.transport")


class Transport(Protocol):
    """Anything that can POST/GET bytes and hand back (status code, body)."""

    def post(self, url: str, headers: Headers, body: bytes) -> Tuple[int, bytes]:
        ...

    def get(self, url: str, headers: Headers) -> Tuple[int, bytes]:
        ...


class RequestsTransport:
    """Stateless ``requests`` based transport.

    No retries. ``timeout`` is handed straight to requests; ``None`` means the
    call waits as long as requests does. Connection level failures surface as
    ``TransportError`` so adapters never need to know about requests.
    """

    def __init__(self, timeout: Optional[float] = None, proxy_url: Optional[str] = None):
        self.timeout = timeout
        self.proxies = {"http": proxy_url, "https": proxy_url} if proxy_url else None

    def post(self, url: str, headers: Headers, body: bytes) -> Tuple[int, bytes]:
        logger.debug("POST %s (%d bytes)", url, len(body))
        try:
            resp = requests.post(url, headers=headers, data=body, timeout=self.timeout, proxies=self.proxies)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        return resp.status_code, resp.content

    def get(self, url: str, headers: Headers) -> Tuple[int, bytes]:
        logger.debug("GET %s", url)
        try:
            resp = requests.get(url, headers=headers, timeout=self.timeout, proxies=self.proxies)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        return resp.status_code, resp.content
