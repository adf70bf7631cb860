# application/ports/requests_client.py
from __future__ import annotations

import time
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, List, Optional, Tuple

import requests

from application.ports.http_client import HttpClientPort, HttpResponse, TransportError
from domain.http import MAX_RESPONSE_BODY_SIZE, HttpHeaders

_CHUNK_SIZE = 64 * 1024


def _header_items(resp: requests.Response) -> List[Tuple[str, str]]:
    # urllib3 keeps repeated headers apart; requests joins them with ","
    raw_headers = getattr(resp.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "iteritems"):
        return [(k, v) for k, v in raw_headers.iteritems()]
    return list(resp.headers.items())


class RequestsHttpClient(HttpClientPort):
    def __init__(self, base_headers: Optional[Dict[str, str]] = None, max_body_size: int = MAX_RESPONSE_BODY_SIZE):
        self._session = requests.Session()
        # Set-Cookie は保存しない。ステップ間の状態は変数コンテキストだけで受け渡す
        self._session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self._base_headers = base_headers or {}
        self._max_body_size = max_body_size

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        timeout_sec: float = 10.0,
        insecure: bool = False,
    ) -> HttpResponse:
        merged = dict(self._base_headers)
        if headers:
            merged.update(headers)

        data = body.encode("utf-8") if body is not None else None

        t0 = time.perf_counter()
        try:
            resp = self._session.request(
                method=method.upper(),
                url=url,
                headers=merged,
                data=data,
                timeout=timeout_sec,
                verify=not insecure,
                stream=True,
            )
            try:
                content, truncated = self._read_capped(resp, deadline=t0 + timeout_sec, timeout_sec=timeout_sec)
                header_items = _header_items(resp)
            finally:
                resp.close()
        except requests.RequestException as e:
            raise TransportError(f"request: {e}") from e

        return HttpResponse(
            status=resp.status_code,
            headers=HttpHeaders(header_items),
            content=content,
            truncated=truncated,
            elapsed_ms=int((time.perf_counter() - t0) * 1000),
        )

    def _read_capped(self, resp: requests.Response, deadline: float, timeout_sec: float) -> Tuple[bytes, bool]:
        # requests の timeout はソケット読み取り単位なので、全体の締め切りはここで見る
        buf = bytearray()
        for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
            if time.perf_counter() > deadline:
                raise TransportError(f"request: timed out after {timeout_sec}s reading response body")
            buf.extend(chunk)
            if len(buf) > self._max_body_size:
                return bytes(buf[: self._max_body_size]), True
        return bytes(buf), False
