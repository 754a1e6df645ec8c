"""remove.bg background removal provider."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from bgrmv.media.providers.base import HttpProvider, decode_data_uri, encode_data_uri, is_data_uri


class RemoveBgRemover(HttpProvider):
    provider_name = "removebg"
    label = "remove.bg"
    credential_name = "REMOVE_BG_API_KEY"

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str = "https://api.remove.bg/v1.0/removebg",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(api_key=api_key, base_url=api_url, timeout_seconds=timeout_seconds, client=client)

    def remove_background(self, *, image_url: str, options: Dict[str, Any]) -> str:
        del options
        api_key = self._require_key()
        data = {"size": "auto"}
        files = None
        if is_data_uri(image_url):
            files = {"image_file": ("image.png", decode_data_uri(image_url), "application/octet-stream")}
        else:
            data["image_url"] = image_url

        response = self._send(
            "POST",
            self._base_url,
            headers={"X-Api-Key": api_key},
            data=data,
            files=files,
        )
        return encode_data_uri(self._checked(response).content, "image/png")
