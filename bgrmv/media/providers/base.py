"""Provider contracts and shared HTTP plumbing for image backends."""

from __future__ import annotations

import base64
from dataclasses import dataclass
import re
from typing import Any, Dict, List, Optional, Protocol

import httpx


_DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)


class ImageProviderError(RuntimeError):
    """Raised when an image provider cannot fulfill a request."""


class ProviderNotConfiguredError(ImageProviderError):
    """Raised when a provider credential is missing."""


class UnknownProviderError(ValueError):
    """Raised when a request names a provider that is not registered."""


@dataclass(frozen=True)
class ImageRef:
    url: str
    width: int = 0
    height: int = 0


def is_data_uri(value: str) -> bool:
    return value.startswith("data:")


def strip_data_uri(value: str) -> str:
    """Return the raw base64 payload of a data URI; other strings unchanged."""

    return _DATA_URI_PREFIX.sub("", value, count=1)


def decode_data_uri(value: str) -> bytes:
    if not is_data_uri(value) or "," not in value:
        raise ImageProviderError("invalid_data_uri")
    try:
        return base64.b64decode(value.split(",", 1)[1])
    except ValueError as exc:
        raise ImageProviderError("invalid_data_uri") from exc


def encode_data_uri(content: bytes, mime_type: str = "image/png") -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def extract_error_message(response: httpx.Response, label: str) -> str:
    """Pull a message out of the provider's error envelope, else a generic one."""

    fallback = f"{label} error {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        detail = response.text.strip()
        if not detail:
            return fallback
        if len(detail) > 240:
            detail = detail[:240] + "..."
        return f"{fallback}: {detail}"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error.strip():
            return error.strip()
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, list) and value:
                first = value[0]
                if isinstance(first, dict) and first.get("msg"):
                    return str(first["msg"])
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict):
                return str(first.get("title") or first.get("detail") or fallback)
            return str(first)
    return fallback


class HttpProvider:
    """Base class holding the HTTP client and credential of one upstream."""

    label = "Provider"
    credential_name = ""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _require_key(self) -> str:
        if not self._api_key:
            raise ProviderNotConfiguredError(f"{self.credential_name} not configured")
        return self._api_key

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._client is not None:
                return self._client.request(method, url, **kwargs)
            with httpx.Client(timeout=self._timeout_seconds) as client:
                return client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ImageProviderError(f"{self.label} request failed: {exc.__class__.__name__}") from exc

    def _checked(self, response: httpx.Response) -> httpx.Response:
        if response.status_code < 200 or response.status_code >= 300:
            raise ImageProviderError(extract_error_message(response, self.label))
        return response

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise ImageProviderError(f"{self.label} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ImageProviderError(f"{self.label} returned an unexpected payload")
        return body

    def _fetch_source_bytes(self, image_url: str) -> bytes:
        """Resolve a data URI or remote URL into raw image bytes."""

        if is_data_uri(image_url):
            return decode_data_uri(image_url)
        try:
            if self._client is not None:
                response = self._client.get(image_url)
            else:
                with httpx.Client(timeout=self._timeout_seconds, follow_redirects=True) as client:
                    response = client.get(image_url)
        except httpx.HTTPError as exc:
            raise ImageProviderError(f"Failed to fetch source image for {self.label}") from exc
        if response.status_code < 200 or response.status_code >= 300:
            raise ImageProviderError(f"Failed to fetch source image for {self.label}: {response.status_code}")
        return response.content


class ImageGenerator(Protocol):
    provider_name: str

    def generate(
        self,
        *,
        prompt: str,
        aspect_ratio: str,
        resolution: str,
        num_images: int,
        seed: Optional[int] = None,
    ) -> List[ImageRef]:
        raise NotImplementedError


class BackgroundRemover(Protocol):
    provider_name: str

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        raise NotImplementedError


class Upscaler(Protocol):
    provider_name: str

    def upscale(
        self,
        *,
        image_url: str,
        scale: int,
        face_enhance: bool,
        original_width: Optional[int] = None,
        original_height: Optional[int] = None,
    ) -> ImageRef:
        raise NotImplementedError
