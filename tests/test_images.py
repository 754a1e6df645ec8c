from __future__ import annotations

from io import BytesIO

import httpx
from PIL import Image
import pytest

from bgrmv.media.images import ImageFetchError, fetch_image_bytes, read_image_meta
from bgrmv.media.providers.base import encode_data_uri


def _png_bytes(image: Image.Image, **save_kwargs) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG", **save_kwargs)
    return buffer.getvalue()


class _FakeHttpClient:
    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self.urls = []

    def get(self, url: str) -> httpx.Response:
        self.urls.append(url)
        return self._response


def test_rgba_png_reports_alpha() -> None:
    content = _png_bytes(Image.new("RGBA", (64, 32), (255, 0, 0, 0)))
    meta = read_image_meta(content)

    assert (meta.width, meta.height) == (64, 32)
    assert meta.has_alpha is True
    assert meta.channel_count == 4
    assert meta.byte_length == len(content)


def test_rgb_png_has_no_alpha() -> None:
    meta = read_image_meta(_png_bytes(Image.new("RGB", (10, 20), (0, 0, 0))))

    assert meta.has_alpha is False
    assert meta.channel_count == 3


def test_palette_png_with_transparency_counts_as_rgba() -> None:
    meta = read_image_meta(_png_bytes(Image.new("P", (8, 8), 0), transparency=0))

    assert meta.has_alpha is True
    assert meta.channel_count == 4


def test_palette_png_without_transparency_counts_as_rgb() -> None:
    meta = read_image_meta(_png_bytes(Image.new("P", (8, 8), 0)))

    assert meta.has_alpha is False
    assert meta.channel_count == 3


def test_undecodable_bytes_raise_fetch_error() -> None:
    with pytest.raises(ImageFetchError, match="Unable to decode image"):
        read_image_meta(b"not an image")


def test_oversized_image_raises_fetch_error(monkeypatch) -> None:
    content = _png_bytes(Image.new("RGB", (100, 100)))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(ImageFetchError, match="exceed the decode limit"):
        read_image_meta(content)


def test_fetch_decodes_data_uri_without_network() -> None:
    client = _FakeHttpClient(httpx.Response(500))

    assert fetch_image_bytes(encode_data_uri(b"payload"), client=client) == b"payload"
    assert client.urls == []


def test_fetch_remote_image() -> None:
    client = _FakeHttpClient(httpx.Response(200, content=b"remote"))

    assert fetch_image_bytes("https://cdn.example/a.png", client=client) == b"remote"
    assert client.urls == ["https://cdn.example/a.png"]


def test_fetch_remote_image_failure_status() -> None:
    client = _FakeHttpClient(httpx.Response(404))

    with pytest.raises(ImageFetchError, match="Failed to fetch image: 404"):
        fetch_image_bytes("https://cdn.example/missing.png", client=client)


def test_fetch_rejects_malformed_data_uri() -> None:
    with pytest.raises(ImageFetchError, match="Failed to decode image data URI"):
        fetch_image_bytes("data:image/png;base64")
