# application/services/redactor.py
from __future__ import annotations

import re
from typing import Any, Dict

MASK = "[masked]"
SENSITIVE_KEYS = {"authorization", "cookie", "set-cookie"}
SENSITIVE_FRAGMENTS = ("token", "password", "secret")

_BODY_PATTERNS = [
    re.compile(rf'(?i)("?{fragment}"?\s*[:=]\s*)("?)([^"\n ,}}&]+)')
    for fragment in SENSITIVE_FRAGMENTS
]


def is_sensitive(key: str) -> bool:
    lower = key.lower()
    return lower in SENSITIVE_KEYS or any(f in lower for f in SENSITIVE_FRAGMENTS)


def mask_value(key: str, value: Any) -> Any:
    if is_sensitive(key) and value is not None:
        return MASK
    return value


def mask_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: mask_value(k, v) for k, v in d.items()}


def mask_body(body: str) -> str:
    """Mask `token: x`, `"password": "x"`, `secret=x` style fragments."""
    for pattern in _BODY_PATTERNS:
        body = pattern.sub(rf"\g<1>\g<2>{MASK}", body)
    return body
