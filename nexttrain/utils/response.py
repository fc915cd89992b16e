from typing import Any, Dict, Optional


def success_response(data: Any, meta: Optional[Dict] = None) -> Dict:
    """Standard success payload.

    {
      "status": "ok",
      "data": ...,
      "meta": { ... }  # optional
    }
    """
    payload = {"status": "ok", "data": data}
    if meta is not None:
        payload["meta"] = meta
    return payload


def error_response(title: str, status: int, detail: Optional[str] = None, type_: str = "about:blank") -> Dict:
    """Problem Details-like error payload."""
    payload = {"type": type_, "title": title, "status": status, "detail": detail}
    return payload
