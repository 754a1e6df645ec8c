"""Replicate predictions providers (Flux Schnell, rembg, Real-ESRGAN)."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from bgrmv.media.providers.base import HttpProvider, ImageProviderError, ImageRef


_TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}


class ReplicateClient(HttpProvider):
    label = "Replicate"
    credential_name = "REPLICATE_API_TOKEN"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.replicate.com/v1",
        timeout_seconds: int = 60,
        poll_interval_seconds: float = 1.0,
        max_polls: int = 60,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds, client=client)
        self._poll_interval_seconds = max(0.0, poll_interval_seconds)
        self._max_polls = max(0, max_polls)
        self._sleep = sleep

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._require_key()}"}

    def _headers(self) -> Dict[str, str]:
        return {
            **self._auth_headers(),
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    def run(self, model: str, model_input: Dict[str, Any]) -> Any:
        """Create a prediction and return its `output` once it has succeeded.

        `model` is either `owner/name` or `owner/name:version`.
        """

        headers = self._headers()
        if ":" in model:
            version = model.split(":", 1)[1]
            response = self._send(
                "POST",
                self._url("predictions"),
                headers=headers,
                json={"version": version, "input": model_input},
            )
        else:
            response = self._send(
                "POST",
                self._url(f"models/{model}/predictions"),
                headers=headers,
                json={"input": model_input},
            )
        prediction = self._json(self._checked(response))

        polls = 0
        while str(prediction.get("status") or "") not in _TERMINAL_STATUSES:
            if polls >= self._max_polls:
                raise ImageProviderError(f"Replicate prediction {prediction.get('id')} did not finish in time")
            get_url = (prediction.get("urls") or {}).get("get")
            if not get_url:
                raise ImageProviderError("Replicate prediction is missing a status URL")
            self._sleep(self._poll_interval_seconds)
            polls += 1
            prediction = self._json(self._checked(self._send("GET", str(get_url), headers=self._auth_headers())))

        status = prediction.get("status")
        if status != "succeeded":
            detail = prediction.get("error") or status
            raise ImageProviderError(f"Replicate prediction {status}: {detail}")
        return prediction.get("output")


def _output_urls(output: Any, label: str) -> List[str]:
    if isinstance(output, str) and output:
        return [output]
    if isinstance(output, list):
        urls = [str(item) for item in output if isinstance(item, str) and item]
        if urls:
            return urls
    raise ImageProviderError(f"Unexpected Replicate {label} response format")


class ReplicateFluxGenerator:
    provider_name = "replicate-flux-schnell"

    def __init__(self, *, client: ReplicateClient, model: str = "black-forest-labs/flux-schnell") -> None:
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
        del resolution
        model_input: Dict[str, Any] = {
            "prompt": prompt,
            "num_outputs": num_images,
            "aspect_ratio": aspect_ratio,
            "output_format": "png",
        }
        if seed is not None:
            model_input["seed"] = seed
        output = self._client.run(self._model, model_input)
        return [ImageRef(url=url) for url in _output_urls(output, "Flux Schnell")]


class ReplicateRembgRemover:
    provider_name = "replicate-rembg"

    def __init__(self, *, client: ReplicateClient, model: str = "cjwbw/rembg") -> None:
        self._client = client
        self._model = model

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        output = self._client.run(self._model, {"image": image_url})
        return _output_urls(output, "rembg")[0]


class ReplicateEsrganUpscaler:
    provider_name = "replicate-esrgan"

    def __init__(self, *, client: ReplicateClient, model: str = "nightmareai/real-esrgan") -> None:
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
        output = self._client.run(
            self._model,
            {"image": image_url, "scale": scale, "face_enhance": face_enhance},
        )
        return ImageRef(url=_output_urls(output, "ESRGAN")[0])
