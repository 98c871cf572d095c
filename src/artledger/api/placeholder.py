"""SVG placeholder images for artworks without a stored file."""

from __future__ import annotations

import html
import re

from fastapi import APIRouter, Path, Query
from fastapi.responses import Response

router = APIRouter(prefix="/api/placeholder", tags=["placeholder"])

_HEX_COLOR = re.compile(r"^[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$")
_FALLBACK_BG = "cccccc"
_FALLBACK_FG = "666666"


def _color(value: str, fallback: str) -> str:
    value = value.lstrip("#")
    return value if _HEX_COLOR.match(value) else fallback


def render_placeholder(width: int, height: int, bg: str, fg: str, text: str) -> str:
    return (
        f"<svg width='{width}' height='{height}' xmlns='http://www.w3.org/2000/svg'>"
        f"<rect width='100%' height='100%' fill='#{_color(bg, _FALLBACK_BG)}'/>"
        "<text x='50%' y='50%' dominant-baseline='middle' text-anchor='middle' "
        f"fill='#{_color(fg, _FALLBACK_FG)}' font-family='Arial, sans-serif' "
        f"font-size='14' font-weight='bold'>{html.escape(text)}</text>"
        "</svg>"
    )


@router.get("/{width}/{height}/{bg}/{fg}")
async def placeholder(
    width: int = Path(..., ge=1, le=4000),
    height: int = Path(..., ge=1, le=4000),
    bg: str = Path(...),
    fg: str = Path(...),
    text: str = Query(default="Artwork", max_length=100),
) -> Response:
    return Response(
        content=render_placeholder(width, height, bg, fg, text),
        media_type="image/svg+xml",
    )
