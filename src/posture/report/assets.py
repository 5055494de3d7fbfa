"""Best-effort fetching of cosmetic assets (the title-page logo)."""

from __future__ import annotations

from io import BytesIO
from typing import Optional

import httpx
from reportlab.lib.utils import ImageReader


async def fetch_logo(url: Optional[str], timeout: float = 5) -> Optional[ImageReader]:
    """Download the logo; any failure yields None and the title page goes on without it."""
    if not url:
        return None
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
        image = ImageReader(BytesIO(response.content))
        image.getSize()
        return image
    except Exception:
        return None
