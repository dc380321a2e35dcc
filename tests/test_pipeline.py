"""Tests for the grading pipeline."""
import numpy as np
import pytest

from lutify.atlas import build_atlas
from lutify.parser import Lattice, identity_lattice
from lutify.pipeline import (
    RenderParams,
    TONE_STAGES,
    adjust_contrast,
    adjust_exposure,
    adjust_saturation,
    adjust_temperature,
    adjust_tint,
    apply,
    preview_frame,
    render,
    sample_atlas,
)

COLORS = [
    (0.0, 0.0, 0.0),
    (1.0, 1.0, 1.0),
    (0.25, 0.5, 0.75),
    (0.9, 0.1, 0.33),
    (0.123, 0.987, 0.456),
]


@pytest.fixture(scope="module")
def random_atlas():
    rng = np.random.default_rng(64)
    lattice = identity_lattice(64)
    return build_atlas(Lattice(size=64, samples=rng.uniform(0, 1, lattice.samples.shape)))


class TestRenderParams:
    """Tests for RenderParams defaults."""

    def test_defaults_are_full_lut_no_adjustments(self):
        """Test the default session is the LUT at 100% with no grading."""
        params = RenderParams()
        assert params.strength == 100
        assert params.exposure == params.contrast == params.saturation == 0
        assert params.temperature == params.tint == 0

    def test_stage_order(self):
        """Test tone stages run exposure, contrast, saturation, temperature, tint."""
        assert [name for name, _ in TONE_STAGES] == [
            "exposure", "contrast", "saturation", "temperature", "tint",
        ]


class TestSampleAtlas:
    """Tests for bilinear / between-slice atlas sampling."""

    def test_lattice_points_read_texels(self, random_atlas):
        """Test colours on lattice points return the stored texel."""
        for r, g, b in [(0, 0, 0), (12, 40, 3), (63, 63, 63), (5, 63, 20)]:
            color = np.array([r, g, b]) / 63
            expected = random_atlas.texel(r, g, b)[:3] / 255.0
            np.testing.assert_allclose(sample_atlas(random_atlas, color), expected, atol=1e-9)

    def test_blends_neighbouring_slices(self, random_atlas):
        """Test blue between slices mixes the two tiles by its fraction."""
        color = np.array([7, 30, 10.25]) / 63
        lower = random_atlas.texel(7, 30, 10)[:3] / 255.0
        upper = random_atlas.texel(7, 30, 11)[:3] / 255.0
        np.testing.assert_allclose(
            sample_atlas(random_atlas, color), 0.75 * lower + 0.25 * upper, atol=1e-9
        )

    def test_bilinear_inside_slice(self, random_atlas):
        """Test red/green between texels are filtered bilinearly."""
        color = np.array([20.5, 8.25, 2]) / 63
        t = lambda r, g: random_atlas.texel(r, g, 2)[:3] / 255.0
        top = 0.5 * t(20, 8) + 0.5 * t(21, 8)
        bottom = 0.5 * t(20, 9) + 0.5 * t(21, 9)
        np.testing.assert_allclose(
            sample_atlas(random_atlas, color), 0.75 * top + 0.25 * bottom, atol=1e-9
        )

    def test_top_slice_clamps(self, random_atlas):
        """Test blue = 1 reads slice 63 only, with no wraparound."""
        color = np.array([0.5, 0.5, 1.0])
        scaled = 0.5 * 63
        lo = random_atlas.texel(31, 31, 63)[:3] / 255.0
        hi_r = random_atlas.texel(32, 31, 63)[:3] / 255.0
        lo_g = random_atlas.texel(31, 32, 63)[:3] / 255.0
        hi_rg = random_atlas.texel(32, 32, 63)[:3] / 255.0
        f = scaled - 31
        expected = (1 - f) * ((1 - f) * lo + f * hi_r) + f * ((1 - f) * lo_g + f * hi_rg)
        np.testing.assert_allclose(sample_atlas(random_atlas, color), expected, atol=1e-9)

    def test_out_of_range_input_is_clamped(self, random_atlas):
        """Test colours outside [0, 1] sample the edge of the cube."""
        np.testing.assert_allclose(
            sample_atlas(random_atlas, [1.5, -0.2, 0.0]),
            sample_atlas(random_atlas, [1.0, 0.0, 0.0]),
        )

    def test_vectorised_matches_single(self, random_atlas, rng):
        """Test a frame of colours samples the same as one at a time."""
        colors = rng.uniform(0, 1, (4, 5, 3))
        frame = sample_atlas(random_atlas, colors)
        assert frame.shape == (4, 5, 3)
        np.testing.assert_allclose(frame[2, 3], sample_atlas(random_atlas, colors[2, 3]))


class TestToneAdjustments:
    """Tests for each tone stage on its own."""

    def test_exposure_doubles_per_stop(self):
        """Test +1 stop doubles every channel."""
        np.testing.assert_allclose(adjust_exposure(np.array([0.1, 0.2, 0.3]), 1.0), [0.2, 0.4, 0.6])

    def test_contrast_pivots_on_mid_grey(self):
        """Test mid grey is fixed and -1 flattens everything to it."""
        np.testing.assert_allclose(adjust_contrast(np.full(3, 0.5), 0.7), [0.5, 0.5, 0.5])
        np.testing.assert_allclose(adjust_contrast(np.array([0.1, 0.9, 0.3]), -1.0), [0.5] * 3)
        np.testing.assert_allclose(adjust_contrast(np.array([0.25, 0.75, 0.5]), 1.0), [0.0, 1.0, 0.5])

    def test_saturation_minus_one_is_luma(self):
        """Test -1 saturation collapses to Rec.601 luma."""
        c = np.array([0.8, 0.4, 0.2])
        luma = 0.299 * 0.8 + 0.587 * 0.4 + 0.114 * 0.2
        np.testing.assert_allclose(adjust_saturation(c, -1.0), [luma] * 3)

    def test_saturation_boost_moves_away_from_luma(self):
        """Test +1 saturation doubles each channel's distance from luma."""
        c = np.array([0.8, 0.4, 0.2])
        luma = 0.299 * 0.8 + 0.587 * 0.4 + 0.114 * 0.2
        np.testing.assert_allclose(adjust_saturation(c, 1.0), luma + 2 * (c - luma))

    def test_warm_temperature(self):
        """Test positive temperature: red +0.1t, blue -0.05t."""
        np.testing.assert_allclose(adjust_temperature(np.full(3, 0.5), 0.5), [0.55, 0.5, 0.475])

    def test_cool_temperature(self):
        """Test negative temperature: blue -0.1t, red +0.05t, t signed."""
        np.testing.assert_allclose(adjust_temperature(np.full(3, 0.5), -0.5), [0.475, 0.5, 0.55])

    def test_green_tint(self):
        """Test positive tint raises green only."""
        np.testing.assert_allclose(adjust_tint(np.full(3, 0.5), 0.5), [0.5, 0.55, 0.5])

    def test_magenta_tint(self):
        """Test negative tint raises red and blue."""
        np.testing.assert_allclose(adjust_tint(np.full(3, 0.5), -0.5), [0.55, 0.5, 0.55])

    def test_adjustments_do_not_modify_input(self):
        """Test temperature and tint return new arrays."""
        c = np.full(3, 0.5)
        adjust_temperature(c, 1.0)
        adjust_tint(c, -1.0)
        np.testing.assert_array_equal(c, [0.5, 0.5, 0.5])


class TestApply:
    """Tests for the full per-pixel pipeline."""

    @pytest.mark.parametrize("color", COLORS + [(1.2, -0.1, 0.5)])
    def test_zero_strength_is_passthrough(self, random_atlas, color):
        """Test strength 0 and no adjustments returns the clamped source."""
        params = RenderParams(strength=0)
        np.testing.assert_allclose(apply(random_atlas, params, color), np.clip(color, 0, 1))

    @pytest.mark.parametrize("color", COLORS)
    def test_identity_lut_direct(self, identity_atlas, color):
        """Test a 64-point identity LUT at full strength changes nothing."""
        out = apply(identity_atlas, RenderParams(), color)
        np.testing.assert_allclose(out, color, atol=2 / 255)

    @pytest.mark.parametrize("color", COLORS)
    def test_identity_lut_resampled(self, color):
        """Test a 17-point identity LUT survives resampling."""
        atlas = build_atlas(identity_lattice(17))
        out = apply(atlas, RenderParams(), color)
        np.testing.assert_allclose(out, color, atol=2 / 255)

    def test_full_strength_is_lut_colour(self, random_atlas):
        """Test strength 100 returns the sampled LUT colour."""
        color = np.array([0.3, 0.6, 0.9])
        np.testing.assert_allclose(
            apply(random_atlas, RenderParams(), color), sample_atlas(random_atlas, color)
        )

    def test_strength_blends_linearly(self, inverted_atlas):
        """Test 50% strength sits halfway between source and LUT."""
        color = np.array([0.2, 0.4, 0.8])
        full = apply(inverted_atlas, RenderParams(strength=100), color)
        half = apply(inverted_atlas, RenderParams(strength=50), color)
        np.testing.assert_allclose(half, (color + full) / 2)

    @pytest.mark.parametrize("color", COLORS)
    def test_distance_grows_with_strength(self, inverted_atlas, color):
        """Test moving strength 0 -> 100 never brings the result closer to the source."""
        distances = [
            np.linalg.norm(apply(inverted_atlas, RenderParams(strength=s), color) - color)
            for s in range(0, 101, 5)
        ]
        assert np.all(np.diff(distances) >= -1e-12)

    def test_exposure_then_contrast_order(self, identity_atlas):
        """Test contrast sees the exposed colour, not the other way round."""
        color = np.array([0.6, 0.4, 0.3])
        params = RenderParams(strength=0, exposure=0.5, contrast=0.5)

        expected = np.clip(adjust_contrast(adjust_exposure(color, 0.5), 0.5), 0, 1)
        reversed_order = np.clip(adjust_exposure(adjust_contrast(color, 0.5), 0.5), 0, 1)

        out = apply(identity_atlas, params, color)
        np.testing.assert_allclose(out, expected)
        assert not np.allclose(out, reversed_order)

    def test_all_stages_in_order(self, random_atlas):
        """Test apply matches chaining every stage by hand."""
        color = np.array([0.35, 0.55, 0.15])
        params = RenderParams(
            strength=70, exposure=0.3, contrast=0.2, saturation=-0.4, temperature=-0.6, tint=0.8
        )
        c = color + (sample_atlas(random_atlas, color) - color) * 0.7
        c = adjust_exposure(c, 0.3)
        c = adjust_contrast(c, 0.2)
        c = adjust_saturation(c, -0.4)
        c = adjust_temperature(c, -0.6)
        c = adjust_tint(c, 0.8)
        np.testing.assert_allclose(apply(random_atlas, params, color), np.clip(c, 0, 1))

    def test_output_clamped(self, identity_atlas):
        """Test heavy exposure clips to 1."""
        out = apply(identity_atlas, RenderParams(strength=0, exposure=2), [0.5, 0.6, 0.1])
        np.testing.assert_allclose(out, [1.0, 1.0, 0.4])

    def test_alpha_passed_through(self, random_atlas):
        """Test RGBA input keeps its alpha untouched."""
        out = apply(random_atlas, RenderParams(exposure=1), [0.2, 0.3, 0.4, 0.35])
        assert out.shape == (4,)
        assert out[3] == 0.35

    def test_frame_matches_per_pixel(self, random_atlas, rng):
        """Test a whole frame grades the same as pixel by pixel."""
        frame = rng.uniform(0, 1, (3, 4, 3))
        params = RenderParams(strength=60, saturation=0.5, tint=-0.3)
        graded = apply(random_atlas, params, frame)
        for y in range(3):
            for x in range(4):
                np.testing.assert_allclose(graded[y, x], apply(random_atlas, params, frame[y, x]))


class TestRender:
    """Tests for whole-frame rendering and preview."""

    def test_uint8_identity_round_trip(self, identity_atlas, rng):
        """Test an 8-bit frame through an identity LUT stays within a code value or two."""
        frame = rng.integers(0, 256, (16, 12, 4), dtype=np.uint8)
        out = render(identity_atlas, RenderParams(), frame)
        assert out.dtype == np.uint8
        assert out.shape == frame.shape
        assert np.max(np.abs(out[..., :3].astype(int) - frame[..., :3])) <= 2
        np.testing.assert_array_equal(out[..., 3], frame[..., 3])

    def test_workers_match_single_thread(self, random_atlas, rng):
        """Test splitting rows across threads gives identical output."""
        frame = rng.integers(0, 256, (37, 20, 3), dtype=np.uint8)
        params = RenderParams(strength=80, exposure=-0.4, temperature=0.7)
        single = render(random_atlas, params, frame)
        threaded = render(random_atlas, params, frame, workers=4)
        np.testing.assert_array_equal(single, threaded)

    def test_more_workers_than_rows(self, random_atlas, rng):
        """Test a frame shorter than the worker count still renders."""
        frame = rng.integers(0, 256, (2, 5, 3), dtype=np.uint8)
        out = render(random_atlas, RenderParams(), frame, workers=8)
        np.testing.assert_array_equal(out, render(random_atlas, RenderParams(), frame))

    def test_float_frame_stays_float(self, identity_atlas):
        """Test float frames come back as floats in [0, 1]."""
        frame = np.full((2, 2, 3), 0.5, dtype=np.float32)
        out = render(identity_atlas, RenderParams(exposure=1), frame)
        assert out.dtype == np.float32
        assert np.all(out <= 1.0)

    def test_rejects_non_frame(self, identity_atlas):
        """Test a 2D array is not accepted as a frame."""
        with pytest.raises(ValueError):
            render(identity_atlas, RenderParams(), np.zeros((4, 4)))

    def test_preview_frame_limits_long_side(self):
        """Test preview subsampling keeps the long side within max_dim."""
        frame = np.zeros((500, 1000, 3), dtype=np.uint8)
        preview = preview_frame(frame, 256)
        assert preview.shape == (125, 250, 3)

    def test_preview_frame_small_image_untouched(self):
        """Test a frame already under max_dim is returned at full size."""
        frame = np.zeros((10, 20, 3), dtype=np.uint8)
        assert preview_frame(frame, 64).shape == (10, 20, 3)

    def test_preview_and_export_agree(self, random_atlas, rng):
        """Test preview pixels equal the matching export pixels."""
        frame = rng.integers(0, 256, (40, 60, 3), dtype=np.uint8)
        params = RenderParams(strength=55, contrast=0.3)
        full = render(random_atlas, params, frame)
        small = render(random_atlas, params, preview_frame(frame, 20))
        np.testing.assert_array_equal(small, full[::3, ::3])
