"""Generation dispatcher: provider selection, primary-provider retry and failure classification."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Event
import time
from typing import Callable, List, Optional, Sequence

from bgrmv.core.logger import get_logger
from bgrmv.core.metrics import record_generation_attempt
from bgrmv.core.runtime import RetryPolicy
from bgrmv.media.providers.base import (
    ImageGenerator,
    ImageProviderError,
    ImageRef,
    ProviderNotConfiguredError,
    UnknownProviderError,
)
from bgrmv.media.providers.factory import DEFAULT_GENERATION_PROVIDER, ProviderRegistry


logger = get_logger("bgrmv.media.generation")

STATUS_BAD_REQUEST = 400
STATUS_POLICY_REJECTED = 422
STATUS_CLIENT_CLOSED = 499
STATUS_FAILED = 500


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    aspect_ratio: str = "1:1"
    resolution: str = "2K"
    num_images: int = 1
    provider: str = DEFAULT_GENERATION_PROVIDER
    seed: Optional[int] = None


class GenerationError(RuntimeError):
    """Final generation failure carrying the HTTP status it maps to."""

    def __init__(self, message: str, *, status_code: int, provider: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider = provider
        self.attempts = attempts


class GenerationCancelled(GenerationError):
    """Raised when the caller cancels while the dispatcher is backing off."""


def classify_failure(message: str, markers: Sequence[str]) -> int:
    """422 when the upstream message reads as a content-policy rejection, else 500."""

    # Upstream APIs only expose a free-text message here, so this is a substring match.
    lowered = message.lower()
    if any(marker.lower() in lowered for marker in markers if marker):
        return STATUS_POLICY_REJECTED
    return STATUS_FAILED


class GenerationDispatcher:
    def __init__(
        self,
        *,
        registry: ProviderRegistry[ImageGenerator],
        primary_provider: str = DEFAULT_GENERATION_PROVIDER,
        retry_policy: Optional[RetryPolicy] = None,
        content_policy_markers: Sequence[str] = ("safety",),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._primary_provider = primary_provider
        self._retry_policy = retry_policy or RetryPolicy()
        self._markers = tuple(content_policy_markers)
        self._sleep = sleep

    def _wait(self, seconds: float, cancel_event: Optional[Event]) -> bool:
        """Back off for `seconds`; return True when cancelled meanwhile."""

        if cancel_event is not None:
            return cancel_event.wait(seconds)
        self._sleep(seconds)
        return False

    def dispatch(self, request: GenerationRequest, *, cancel_event: Optional[Event] = None) -> List[ImageRef]:
        prompt = (request.prompt or "").strip()
        if not prompt:
            raise GenerationError("prompt is required", status_code=STATUS_BAD_REQUEST, provider=request.provider)

        try:
            generator = self._registry.get(request.provider)
        except UnknownProviderError as exc:
            raise GenerationError(str(exc), status_code=STATUS_BAD_REQUEST, provider=request.provider) from exc

        max_attempts = self._retry_policy.max_attempts if request.provider == self._primary_provider else 1
        last_error: Optional[ImageProviderError] = None

        for attempt in range(1, max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelled(
                    "Generation cancelled",
                    status_code=STATUS_CLIENT_CLOSED,
                    provider=request.provider,
                    attempts=attempt - 1,
                )
            try:
                images = generator.generate(
                    prompt=prompt,
                    aspect_ratio=request.aspect_ratio,
                    resolution=request.resolution,
                    num_images=request.num_images,
                    seed=request.seed,
                )
            except ProviderNotConfiguredError as exc:
                record_generation_attempt(provider=request.provider, outcome="not_configured")
                raise GenerationError(
                    str(exc),
                    status_code=STATUS_FAILED,
                    provider=request.provider,
                    attempts=attempt,
                ) from exc
            except ImageProviderError as exc:
                last_error = exc
                record_generation_attempt(provider=request.provider, outcome="failed")
                logger.warning(
                    "generation_attempt_failed",
                    provider=request.provider,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(exc),
                )
                if attempt < max_attempts:
                    if self._wait(self._retry_policy.delay_seconds(attempt), cancel_event):
                        raise GenerationCancelled(
                            "Generation cancelled",
                            status_code=STATUS_CLIENT_CLOSED,
                            provider=request.provider,
                            attempts=attempt,
                        ) from exc
                continue

            record_generation_attempt(provider=request.provider, outcome="succeeded")
            return images

        message = (str(last_error) if last_error is not None else "") or "Generation failed"
        # Content-policy classification only applies to the retried primary provider.
        if request.provider == self._primary_provider:
            status_code = classify_failure(message, self._markers)
        else:
            status_code = STATUS_FAILED
        logger.error(
            "generation_failed",
            provider=request.provider,
            attempts=max_attempts,
            status_code=status_code,
            error=message,
        )
        raise GenerationError(
            message,
            status_code=status_code,
            provider=request.provider,
            attempts=max_attempts,
        ) from last_error
