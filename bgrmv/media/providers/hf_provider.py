"""Hugging Face Inference providers (FLUX.1-dev generation, RMBG-2.0 matting)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from bgrmv.media.providers.base import HttpProvider, ImageProviderError, ImageRef, encode_data_uri


class HuggingFaceClient(HttpProvider):
    label = "Hugging Face"
    credential_name = "HF_TOKEN"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://router.huggingface.co/hf-inference/models",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(api_key=api_key, base_url=base_url, timeout_seconds=timeout_seconds, client=client)

    def _auth(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._require_key()}"}

    def infer_json(self, model: str, payload: Dict[str, Any]) -> httpx.Response:
        headers = {**self._auth(), "Content-Type": "application/json", "Accept": "image/png"}
        return self._checked(self._send("POST", self._url(model), headers=headers, json=payload))

    def infer_bytes(self, model: str, content: bytes) -> httpx.Response:
        headers = {**self._auth(), "Content-Type": "application/octet-stream"}
        return self._checked(self._send("POST", self._url(model), headers=headers, content=content))

    def fetch_source(self, image_url: str) -> bytes:
        self._require_key()
        return self._fetch_source_bytes(image_url)


def _is_image_response(response: httpx.Response) -> bool:
    return response.headers.get("content-type", "").lower().startswith("image/")


class HuggingFaceFluxGenerator:
    provider_name = "hf-flux"

    def __init__(
        self,
        *,
        client: HuggingFaceClient,
        model: str = "black-forest-labs/FLUX.1-dev",
        steps: int = 28,
    ) -> None:
        self._client = client
        self._model = model
        self._steps = steps

    def generate(
        self,
        *,
        prompt: str,
        aspect_ratio: str,
        resolution: str,
        num_images: int,
        seed: Optional[int] = None,
    ) -> List[ImageRef]:
        # Single image per call; aspect ratio and resolution are not part of the HF contract.
        del aspect_ratio, resolution, num_images
        parameters: Dict[str, Any] = {"num_inference_steps": self._steps}
        if seed is not None:
            parameters["seed"] = seed
        response = self._client.infer_json(self._model, {"inputs": prompt, "parameters": parameters})
        if not _is_image_response(response):
            raise ImageProviderError("Unexpected Hugging Face FLUX response format")
        mime_type = response.headers["content-type"].split(";", 1)[0].strip()
        return [ImageRef(url=encode_data_uri(response.content, mime_type))]


class HuggingFaceRmbgRemover:
    provider_name = "hf-rmbg"

    def __init__(self, *, client: HuggingFaceClient, model: str = "briaai/RMBG-2.0") -> None:
        self._client = client
        self._model = model

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        source = self._client.fetch_source(image_url)
        response = self._client.infer_bytes(self._model, source)
        if _is_image_response(response):
            return encode_data_uri(response.content, "image/png")

        try:
            body = response.json()
        except ValueError as exc:
            raise ImageProviderError("Unexpected HF RMBG-2.0 response format") from exc
        # Segmentation envelope: [{"label": ..., "score": ..., "mask": <base64 png>}]
        if isinstance(body, list):
            for segment in body:
                if isinstance(segment, dict) and isinstance(segment.get("mask"), str) and segment["mask"]:
                    return f"data:image/png;base64,{segment['mask']}"
        raise ImageProviderError("Unexpected HF RMBG-2.0 response format")
