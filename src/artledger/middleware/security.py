from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

# Responses are JSON, raster images or the SVG placeholder; none of them
# needs scripts, frames or sub-resources.
_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; style-src 'unsafe-inline'; frame-ancestors 'none'",
}

# Public images are embedded by the web client from another origin.
_CROSS_ORIGIN_PREFIXES = ("/api/artworks/image/", "/api/placeholder/")

# Tokens (auth) and paid-for files (download) must not land in shared caches.
_PRIVATE_PREFIXES = ("/api/auth/",)
_PRIVATE_SUFFIXES = ("/download",)

_HSTS_VALUE = "max-age=31536000; includeSubDomains"


def _apply_security_headers(response: Response, path: str, is_https: bool) -> None:
    for name, value in _BASE_HEADERS.items():
        response.headers[name] = value

    if path.startswith(_CROSS_ORIGIN_PREFIXES):
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    else:
        response.headers["Cross-Origin-Resource-Policy"] = "same-origin"

    if path.startswith(_PRIVATE_PREFIXES) or path.endswith(_PRIVATE_SUFFIXES):
        response.headers["Cache-Control"] = "private, no-store"

    if is_https:
        response.headers["Strict-Transport-Security"] = _HSTS_VALUE


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Locks down embedding and caching of API responses by route."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        _apply_security_headers(
            response,
            path=request.url.path,
            is_https=request.url.scheme == "https",
        )
        return response
