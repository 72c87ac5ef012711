"""
Shared web security helpers for the route modules.

Contains the same-origin check for cookie-authenticated writes, and the CORS
and API-key handling used by the `/functions/*` endpoints. Keeping a single
implementation avoids drift between the routers.
"""
from __future__ import annotations

import hmac
import os
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse, Response


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def private_headers(*, cors: bool = False) -> dict:
    headers = {"Cache-Control": "private, no-store"}
    if cors:
        headers.update(CORS_HEADERS)
    return headers


def private_json(body: dict, *, status_code: int = 200, cors: bool = False) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=private_headers(cors=cors))


def preflight_response() -> Response:
    """Empty 200 answer to a CORS preflight."""
    return Response(status_code=200, headers=private_headers(cors=True))


def function_key_error(request: Request):
    """Return a 401 response when the function API key is configured but not presented.

    When PROVISIONING_API_KEY is unset (dev) the endpoints stay open; the
    startup guard refuses that state in production.
    """
    expected = (os.getenv("PROVISIONING_API_KEY") or "").strip()
    if not expected:
        return None
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip().encode("utf-8"), expected.encode("utf-8")):
        return private_json({"error": "unauthorized"}, status_code=401, cors=True)
    return None


def _origin_tuple(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else (443 if scheme == "https" else 80)
    return scheme, p.hostname.lower(), int(port)


def _server_tuple(request: Request) -> tuple[str, str, int]:
    trust_proxy = (os.getenv("SMARTATTEND_TRUST_PROXY", "false") or "").lower() == "true"
    if trust_proxy:
        proto = (request.headers.get("x-forwarded-proto") or request.url.scheme or "http").split(",")[0].strip()
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        if host:
            return _origin_tuple(f"{proto}://{host}")
    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else (443 if scheme == "https" else 80)
    return scheme, host, port


def is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    Proxy awareness: Only trust X-Forwarded-* when SMARTATTEND_TRUST_PROXY=true.
    """
    candidate = request.headers.get("origin") or request.headers.get("referer")
    if not candidate:
        return True
    try:
        return _origin_tuple(candidate) == _server_tuple(request)
    except ValueError:
        return False
