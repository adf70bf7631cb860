# tests/local_server.py
"""
Threaded local HTTP server for transport and end-to-end tests.
"""
from __future__ import annotations

import json
import threading
import time
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, Iterator, List, Optional, Tuple

# handler(path, headers, body) -> (status, headers list, body bytes)
# body may also be a list of (delay_sec, bytes) pieces written one at a time
Route = Callable[[str, Dict[str, str], bytes], Tuple[int, List[Tuple[str, str]], bytes]]


def json_route(payload, status: int = 200, extra_headers: Optional[List[Tuple[str, str]]] = None) -> Route:
    def handle(_path, _headers, _body):
        headers = [("Content-Type", "application/json")] + list(extra_headers or [])
        return status, headers, json.dumps(payload).encode("utf-8")

    return handle


@contextmanager
def serve(routes: Dict[Tuple[str, str], Route]) -> Iterator[Tuple[str, List[Tuple[str, str, Dict[str, str], bytes]]]]:
    received: List[Tuple[str, str, Dict[str, str], bytes]] = []

    class Handler(BaseHTTPRequestHandler):
        def _dispatch(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            path = self.path.split("?", 1)[0]
            headers = {k: v for k, v in self.headers.items()}
            received.append((self.command, self.path, headers, body))

            route = routes.get((self.command, path))
            if route is None:
                status, out_headers, payload = 404, [("Content-Type", "text/plain")], b"not found"
            else:
                status, out_headers, payload = route(self.path, headers, body)

            self.send_response(status)
            for k, v in out_headers:
                self.send_header(k, v)
            pieces = [(0.0, payload)] if isinstance(payload, bytes) else list(payload)
            self.send_header("Content-Length", str(sum(len(p) for _, p in pieces)))
            self.end_headers()
            for delay, piece in pieces:
                if delay:
                    time.sleep(delay)
                self.wfile.write(piece)
                self.wfile.flush()

        do_GET = _dispatch
        do_POST = _dispatch
        do_PUT = _dispatch
        do_DELETE = _dispatch

        def log_message(self, *_args) -> None:
            return None

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}", received
    finally:
        server.shutdown()
        server.server_close()
