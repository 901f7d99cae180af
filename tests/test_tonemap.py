"""Unit tests for tone mapping and byte encoding."""

import math

import numpy as np
import pytest


def _expected_channel(x):
    """Reference value of one channel, written out from the curve."""
    from pathtracer.core.tonemap import ACES_A, ACES_B, ACES_C, ACES_D, ACES_E

    mapped = x * (ACES_A * x + ACES_B) / (x * (ACES_C * x + ACES_D) + ACES_E)
    mapped = min(max(mapped, 0.0), 1.1)
    return min(math.floor(mapped ** (1.0 / 2.2) * 255.0 + 0.5), 255)


class TestToneMap:
    """Tests for the ACES curve and 8-bit quantisation."""

    def test_black_stays_black(self):
        from pathtracer.core.tonemap import tone_map_color

        assert tone_map_color((0.0, 0.0, 0.0)) == (0, 0, 0)

    @pytest.mark.parametrize("value", [0.01, 0.1, 0.5, 1.0, 2.0, 4.0])
    def test_matches_reference_curve(self, value):
        from pathtracer.core.tonemap import tone_map_color

        assert tone_map_color((value, value, value)) == (_expected_channel(value),) * 3

    def test_bright_values_clip_to_255(self):
        from pathtracer.core.tonemap import tone_map_color

        assert tone_map_color((1e6, 50.0, 20.0)) == (255, 255, 255)

    def test_monotonic(self):
        from pathtracer.core.tonemap import tone_map

        values = tone_map(np.linspace(0.0, 10.0, 200))
        assert np.all(np.diff(values.astype(np.int32)) >= 0)

    def test_preserves_shape_and_dtype(self):
        from pathtracer.core.tonemap import tone_map

        result = tone_map(np.zeros((3, 5, 3), dtype=np.float32))
        assert result.shape == (3, 5, 3)
        assert result.dtype == np.uint8

    def test_aces_curve_at_one(self):
        from pathtracer.core.tonemap import aces_filmic

        assert float(aces_filmic(1.0)) == pytest.approx(2.54 / 3.16)


class TestEncodePixels:
    """Tests for the packed RGB byte layout."""

    def test_row_major_rgb(self):
        from pathtracer.core.tonemap import encode_pixels, tone_map_color

        radiance = np.zeros((2, 3, 3), dtype=np.float32)
        radiance[0, 2] = (1.0, 0.0, 0.0)
        radiance[1, 0] = (0.0, 0.0, 1.0)
        pixels = encode_pixels(radiance)

        assert len(pixels) == 2 * 3 * 3
        red = tone_map_color((1.0, 0.0, 0.0))
        blue = tone_map_color((0.0, 0.0, 1.0))
        # Top row, third column
        assert tuple(pixels[6:9]) == red
        # Second row, first column
        assert tuple(pixels[9:12]) == blue
        assert pixels[:6] == bytes(6)

    def test_rejects_bad_shape(self):
        from pathtracer.core.tonemap import encode_pixels

        with pytest.raises(ValueError, match="height, width, 3"):
            encode_pixels(np.zeros((4, 4), dtype=np.float32))
