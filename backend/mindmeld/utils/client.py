from __future__ import annotations

from flask import Request


def get_client_ip(request: Request) -> str | None:
    # Proxy headers first, most specific to least.
    for header in ("CF-Connecting-IP", "X-Real-IP"):
        value = request.headers.get(header)
        if value:
            return value.strip()

    forwarded = [p.strip() for p in request.headers.get("X-Forwarded-For", "").split(",") if p.strip()]
    if forwarded:
        return forwarded[0]

    return request.remote_addr or None


def describe_client(request: Request) -> str:
    origin = request.headers.get("Origin") or "unknown"
    return f"ip={get_client_ip(request) or 'unknown'} origin={origin}"
