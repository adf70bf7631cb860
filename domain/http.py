# domain/http.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

MAX_RESPONSE_BODY_SIZE = 2 * 1024 * 1024


class HttpHeaders:
    """Ordered, multi-valued header collection with case-insensitive lookup."""

    def __init__(self, items: Union[Mapping[str, str], Iterable[Tuple[str, str]], None] = None):
        if isinstance(items, Mapping):
            items = items.items()
        self._items: List[Tuple[str, str]] = [(str(k), str(v)) for k, v in (items or [])]

    def get_all(self, name: str) -> List[str]:
        wanted = name.lower()
        return [v for k, v in self._items if k.lower() == wanted]

    def first(self, name: str) -> Optional[str]:
        values = self.get_all(name)
        return values[0] if values else None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(self.get_all(name))

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def grouped(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for k, v in self._items:
            out.setdefault(k, []).append(v)
        return out

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, HttpHeaders) and self._items == other._items

    def __repr__(self) -> str:
        return f"HttpHeaders({self._items!r})"


def decode_body(raw: Optional[bytes], headers: HttpHeaders) -> str:
    """
    Decode response bytes, preferring the Content-Type charset over UTF-8.
    """
    if not raw:
        return ""

    ctype = headers.first("Content-Type") or ""
    m = re.search(r"charset\s*=\s*([^\s;]+)", ctype, re.I)
    if m:
        enc = m.group(1).strip().strip('"').strip("'")
        try:
            return raw.decode(enc, errors="replace")
        except LookupError:
            pass

    return raw.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class RequestInfo:
    """Rendered request as it was (or would have been) sent."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)
    body: str = ""


@dataclass(frozen=True)
class ResponseInfo:
    status: int
    headers: HttpHeaders
    content: bytes = b""
    truncated: bool = False
    elapsed_ms: int = 0

    @property
    def text(self) -> str:
        return decode_body(self.content, self.headers)
