# application/ports/http_client.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from domain.http import HttpHeaders


class TransportError(Exception):
    """Connection failure, timeout, TLS error or unreadable response."""


@dataclass(frozen=True)
class HttpResponse:
    status: int
    headers: HttpHeaders
    content: bytes
    truncated: bool = False
    elapsed_ms: int = 0


class HttpClientPort(ABC):
    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        timeout_sec: float = 10.0,
        insecure: bool = False,
    ) -> HttpResponse:
        """
        Perform one request. Raises TransportError; never raises for HTTP
        error statuses.
        """
        ...
