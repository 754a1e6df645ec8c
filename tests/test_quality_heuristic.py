from __future__ import annotations

import itertools

import pytest

from bgrmv.core.runtime import QualityPolicy
from bgrmv.media.quality import (
    RECOMMEND_OK,
    RECOMMEND_RETRY,
    RECOMMEND_UPSCALE,
    ImageMeta,
    check_quality,
    suggested_scale,
)


def _meta(width: int, height: int, *, alpha: bool = True, byte_length: int | None = None) -> ImageMeta:
    if byte_length is None:
        byte_length = width * height
    return ImageMeta(
        width=width,
        height=height,
        has_alpha=alpha,
        channel_count=4 if alpha else 3,
        byte_length=byte_length,
    )


def test_scenario_clean_cutout_passes() -> None:
    verdict = check_quality(_meta(1000, 1000, alpha=False), _meta(900, 900, byte_length=900 * 900 // 2))

    assert verdict.passed is True
    assert verdict.recommendation == RECOMMEND_OK
    assert verdict.quality_ratio == pytest.approx(0.81)
    assert verdict.has_transparency is True
    assert verdict.suggested_scale is None


def test_scenario_opaque_output_is_retried() -> None:
    verdict = check_quality(_meta(400, 400, alpha=False), _meta(400, 400, alpha=False))

    assert verdict.passed is False
    assert verdict.has_transparency is False
    assert verdict.recommendation == RECOMMEND_RETRY
    assert verdict.suggested_scale is None


def test_scenario_shrunken_output_is_upscaled() -> None:
    verdict = check_quality(_meta(424, 424, alpha=False), _meta(300, 300))

    assert verdict.quality_ratio == pytest.approx(0.5, abs=0.01)
    assert verdict.passed is False
    assert verdict.recommendation == RECOMMEND_UPSCALE
    assert verdict.suggested_scale == 4
    payload = verdict.as_payload()
    assert payload["suggestedScale"] == 4
    assert payload["outputSize"] == {"width": 300, "height": 300}


def test_missing_original_dimensions_skip_ratio_check() -> None:
    verdict = check_quality(_meta(0, 0, alpha=False), _meta(256, 256))

    assert verdict.quality_ratio == 1.0
    assert verdict.recommendation == RECOMMEND_OK


def test_alpha_without_four_channels_is_not_transparent() -> None:
    processed = ImageMeta(width=100, height=100, has_alpha=True, channel_count=2, byte_length=10_000)
    verdict = check_quality(_meta(100, 100, alpha=False), processed)

    assert verdict.has_transparency is False
    assert verdict.recommendation == RECOMMEND_RETRY


@pytest.mark.parametrize(
    ("ratio_ok", "transparent", "size_ok"),
    list(itertools.product([True, False], repeat=3)),
)
def test_recommendation_precedence_truth_table(ratio_ok: bool, transparent: bool, size_ok: bool) -> None:
    original = _meta(1000, 1000, alpha=False)
    side = 1000 if ratio_ok else 600
    pixels = side * side
    processed = _meta(side, side, alpha=transparent, byte_length=pixels if size_ok else pixels // 4)

    verdict = check_quality(original, processed)

    if not size_ok:
        expected = RECOMMEND_RETRY
    elif not ratio_ok:
        expected = RECOMMEND_UPSCALE
    elif not transparent:
        expected = RECOMMEND_RETRY
    else:
        expected = RECOMMEND_OK

    assert verdict.recommendation == expected
    assert verdict.passed is (ratio_ok and transparent and size_ok)
    assert (verdict.suggested_scale is not None) is (expected == RECOMMEND_UPSCALE)
    if expected == RECOMMEND_UPSCALE:
        assert "suggestedScale" in verdict.as_payload()
    else:
        assert "suggestedScale" not in verdict.as_payload()


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [(300, 300, 4), (511, 200, 4), (512, 100, 2), (100, 800, 2), (2048, 2048, 2)],
)
def test_suggested_scale_threshold(width: int, height: int, expected: int) -> None:
    assert suggested_scale(width, height) == expected


def test_policy_overrides_thresholds() -> None:
    policy = QualityPolicy(min_quality_ratio=0.5, small_image_max_dimension=1024)
    verdict = check_quality(_meta(1000, 1000, alpha=False), _meta(600, 600), policy)

    assert verdict.recommendation == RECOMMEND_OK
    assert suggested_scale(800, 800, policy) == 4
