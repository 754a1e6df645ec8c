"""Bria v2 API: generic action proxy plus generation, matting and upscale adapters."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from bgrmv.media.providers.base import (
    HttpProvider,
    ImageProviderError,
    ImageRef,
    is_data_uri,
    strip_data_uri,
)


ACTION_PATHS: Dict[str, str] = {
    "generate": "/image/generate",
    "generate_lite": "/image/generate/lite",
    "remove_background": "/image/edit/remove_background",
    "replace_background": "/image/edit/replace_background",
    "gen_fill": "/image/edit/gen_fill",
    "erase": "/image/edit/erase",
    "enhance": "/image/edit/enhance",
    "expand": "/image/edit/expand",
    "blur_background": "/image/edit/blur_background",
    "increase_resolution": "/image/edit/increase_resolution",
    "crop_foreground": "/image/edit/crop_foreground",
    "erase_foreground": "/image/edit/erase_foreground",
}

# Bria takes raw base64 in these fields.
_IMAGE_FIELDS = ("image", "mask")


class BriaClient(HttpProvider):
    label = "Bria"
    credential_name = "BRIA_API_TOKEN"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://engine.prod.bria-api.com/v2",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def call(self, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Run a synchronous Bria action and return its `result` object."""

        api_token = self._require_key()
        path = ACTION_PATHS.get(action)
        if path is None:
            raise ImageProviderError(f"Unknown Bria action: {action}")

        body: Dict[str, Any] = {**params, "sync": True}
        for key in _IMAGE_FIELDS:
            value = body.get(key)
            if isinstance(value, str) and is_data_uri(value):
                body[key] = strip_data_uri(value)

        response = self._send(
            "POST",
            self._url(path),
            headers={"Content-Type": "application/json", "api_token": api_token},
            json=body,
        )
        payload = self._json(self._checked(response))
        result = payload.get("result")
        if isinstance(result, dict):
            return result
        return payload


def _result_url(result: Dict[str, Any]) -> str:
    return str(result.get("image_url") or result.get("url") or "").strip()


class BriaImageGenerator:
    def __init__(self, *, client: BriaClient, lite: bool = False) -> None:
        self._client = client
        self._lite = lite
        self.provider_name = "bria-lite" if lite else "bria"

    def generate(
        self,
        *,
        prompt: str,
        aspect_ratio: str,
        resolution: str,
        num_images: int,
        seed: Optional[int] = None,
    ) -> List[ImageRef]:
        del resolution, num_images
        params: Dict[str, Any] = {"prompt": prompt, "aspect_ratio": aspect_ratio}
        if not self._lite:
            params["resolution"] = "1MP"
        if seed is not None:
            params["seed"] = seed
        result = self._client.call("generate_lite" if self._lite else "generate", params)
        image_url = _result_url(result)
        if not image_url:
            raise ImageProviderError("No image URL in Bria response")
        return [ImageRef(url=image_url)]


class BriaRemover:
    provider_name = "bria-rmbg"

    def __init__(self, *, client: BriaClient) -> None:
        self._client = client

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        result = self._client.call("remove_background", {"image": image_url})
        return _result_url(result)


class BriaUpscaler:
    provider_name = "bria"

    def __init__(self, *, client: BriaClient) -> None:
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
        del face_enhance, original_width, original_height
        result = self._client.call("increase_resolution", {"image": image_url, "desired_increase": scale})
        return ImageRef(url=_result_url(result))
