"""Image fetching and metadata inspection for quality checks."""

from __future__ import annotations

from io import BytesIO
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from bgrmv.media.providers.base import ImageProviderError, decode_data_uri, is_data_uri
from bgrmv.media.quality import ImageMeta


class ImageFetchError(RuntimeError):
    """Raised when an image cannot be fetched or decoded."""


def fetch_image_bytes(
    url: str,
    *,
    timeout_seconds: int = 60,
    client: Optional[httpx.Client] = None,
) -> bytes:
    """Return raw bytes for a data URI or a remote image URL."""

    if is_data_uri(url):
        try:
            return decode_data_uri(url)
        except ImageProviderError as exc:
            raise ImageFetchError("Failed to decode image data URI") from exc

    try:
        if client is not None:
            response = client.get(url)
        else:
            with httpx.Client(timeout=max(1, timeout_seconds), follow_redirects=True) as http:
                response = http.get(url)
    except httpx.HTTPError as exc:
        raise ImageFetchError(f"Failed to fetch image: {exc.__class__.__name__}") from exc

    if response.status_code < 200 or response.status_code >= 300:
        raise ImageFetchError(f"Failed to fetch image: {response.status_code}")
    return response.content


def read_image_meta(content: bytes) -> ImageMeta:
    """Decode just enough of the image header to describe size and channels."""

    try:
        with Image.open(BytesIO(content)) as image:
            width, height = image.size
            mode = image.mode
            bands = image.getbands()
            has_alpha = "A" in bands or "a" in bands
            channel_count = len(bands)
            if mode == "P":
                # Palette images expand to RGB, or RGBA when a transparent index is present.
                has_alpha = "transparency" in image.info
                channel_count = 4 if has_alpha else 3
            elif mode == "PA":
                channel_count = 4
    except Image.DecompressionBombError as exc:
        raise ImageFetchError("Image dimensions exceed the decode limit") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageFetchError("Unable to decode image") from exc

    return ImageMeta(
        width=int(width),
        height=int(height),
        has_alpha=has_alpha,
        channel_count=channel_count,
        byte_length=len(content),
    )
