"""Clipdrop providers: background removal and image upscaling."""

from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from bgrmv.media.providers.base import HttpProvider, ImageProviderError, ImageRef, encode_data_uri


CLIPDROP_MAX_DIMENSION = 4096


class ClipdropClient(HttpProvider):
    label = "Clipdrop"
    credential_name = "CLIPDROP_API_KEY"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://clipdrop-api.co",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def submit(self, path: str, *, image: bytes, data: Optional[Dict[str, Any]] = None) -> httpx.Response:
        api_key = self._require_key()
        response = self._send(
            "POST",
            self._url(path),
            headers={"x-api-key": api_key},
            files={"image_file": ("image.png", image, "application/octet-stream")},
            data=data or {},
        )
        return self._checked(response)

    def fetch_source(self, image_url: str) -> bytes:
        self._require_key()
        return self._fetch_source_bytes(image_url)


def _response_mime(response: httpx.Response, default: str) -> str:
    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    return content_type if content_type.startswith("image/") else default


def _source_dimensions(content: bytes) -> Tuple[int, int]:
    try:
        with Image.open(BytesIO(content)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageProviderError("Unable to read source image dimensions for Clipdrop") from exc


class ClipdropRemover:
    provider_name = "clipdrop"

    def __init__(self, *, client: ClipdropClient) -> None:
        self._client = client

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        source = self._client.fetch_source(image_url)
        response = self._client.submit("remove-background/v1", image=source)
        return encode_data_uri(response.content, _response_mime(response, "image/png"))


class ClipdropUpscaler:
    provider_name = "clipdrop"

    def __init__(self, *, client: ClipdropClient) -> None:
        self._client = client

    def upscale(
        self,
        *,
        image_url: str,
        scale: int,
        face_enhance: bool,
        original_width: Optional[int] = None,
        original_height: Optional[int] = None,
    ) -> ImageRef:
        del face_enhance
        source = self._client.fetch_source(image_url)
        if original_width and original_height:
            width, height = original_width, original_height
        else:
            width, height = _source_dimensions(source)

        factor = min(float(scale), CLIPDROP_MAX_DIMENSION / max(width, height, 1))
        target_width = max(1, int(width * factor))
        target_height = max(1, int(height * factor))
        response = self._client.submit(
            "image-upscaling/v1/upscale",
            image=source,
            data={"target_width": str(target_width), "target_height": str(target_height)},
        )
        return ImageRef(
            url=encode_data_uri(response.content, _response_mime(response, "image/webp")),
            width=target_width,
            height=target_height,
        )
