"""fal.ai providers: nano-banana-pro generation, BiRefNet/BRIA matting, Real-ESRGAN."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from bgrmv.media.providers.base import HttpProvider, ImageProviderError, ImageRef


BIREFNET_MODELS = ("General Use (Light)", "General Use (Heavy)", "Portrait")
DEFAULT_BIREFNET_MODEL = "General Use (Heavy)"


class FalClient(HttpProvider):
    """Synchronous `fal.run` endpoint: the POST returns the model output directly."""

    label = "fal.ai"
    credential_name = "FAL_KEY"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://fal.run",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def run(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        api_key = self._require_key()
        response = self._send(
            "POST",
            self._url(model),
            headers={"Authorization": f"Key {api_key}", "Content-Type": "application/json"},
            json=payload,
        )
        return self._json(self._checked(response))


def _image_url(body: Dict[str, Any], label: str) -> Dict[str, Any]:
    image = body.get("image")
    if not isinstance(image, dict) or not image.get("url"):
        raise ImageProviderError(f"No image URL in {label} response")
    return image


class FalImageGenerator:
    provider_name = "fal"

    def __init__(self, *, client: FalClient, model: str = "fal-ai/nano-banana-pro") -> None:
        self._client = client
        self._model = model

    def generate(
        self,
        *,
        prompt: str,
        aspect_ratio: str,
        resolution: str,
        num_images: int,
        seed: Optional[int] = None,
    ) -> List[ImageRef]:
        payload: Dict[str, Any] = {
            "prompt": prompt,
            "num_images": num_images,
            "aspect_ratio": aspect_ratio,
            "resolution": resolution,
            "output_format": "png",
        }
        if seed is not None:
            payload["seed"] = seed

        body = self._client.run(self._model, payload)
        images = body.get("images")
        if not isinstance(images, list) or not images:
            raise ImageProviderError("No images in fal.ai response")

        refs: List[ImageRef] = []
        for item in images:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            refs.append(
                ImageRef(
                    url=str(item["url"]),
                    width=int(item.get("width") or 0),
                    height=int(item.get("height") or 0),
                )
            )
        if not refs:
            raise ImageProviderError("No images in fal.ai response")
        return refs


class FalBiRefNetRemover:
    provider_name = "birefnet"

    def __init__(self, *, client: FalClient, model: str = "fal-ai/birefnet") -> None:
        self._client = client
        self._model = model

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        variant = str(options.get("birefnetModel") or DEFAULT_BIREFNET_MODEL)
        if variant not in BIREFNET_MODELS:
            variant = DEFAULT_BIREFNET_MODEL
        body = self._client.run(
            self._model,
            {
                "image_url": image_url,
                "model": variant,
                "operating_resolution": "1024x1024",
                "output_format": "png",
            },
        )
        return str(_image_url(body, "BiRefNet")["url"])


class FalBriaRemover:
    provider_name = "bria"

    def __init__(self, *, client: FalClient, model: str = "fal-ai/bria/rmbg") -> None:
        self._client = client
        self._model = model

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        body = self._client.run(self._model, {"image_url": image_url})
        return str(_image_url(body, "BRIA RMBG")["url"])


class FalRealEsrganUpscaler:
    provider_name = "real-esrgan"

    def __init__(self, *, client: FalClient, model: str = "fal-ai/real-esrgan") -> None:
        self._client = client
        self._model = model

    def upscale(
        self,
        *,
        image_url: str,
        scale: int,
        face_enhance: bool,
        original_width: Optional[int] = None,
        original_height: Optional[int] = None,
    ) -> ImageRef:
        del original_width, original_height
        variant = "RealESRGAN_x4plus" if scale == 4 else "RealESRGAN_x2plus"
        body = self._client.run(
            self._model,
            {
                "image_url": image_url,
                "scale": scale,
                "face_enhance": face_enhance,
                "model": variant,
            },
        )
        image = _image_url(body, "Real-ESRGAN")
        return ImageRef(
            url=str(image["url"]),
            width=int(image.get("width") or 0),
            height=int(image.get("height") or 0),
        )
