import numpy as np
import pytest

from color_spaces import (
    LMS_TO_LALPHABETA, RGB_TO_LMS, LabColorSpace, LogLMSColorSpace,
    get_color_space, validate_display_image,
)
from gamut_rescale import gamut_excess


def all_corner_colors():
    """Every combination of 0 / 128 / 255 per channel, plus noise"""
    levels = np.array([0, 128, 255], dtype=np.uint8)
    combos = np.array(np.meshgrid(levels, levels, levels)).reshape(3, -1).T
    rng = np.random.default_rng(5)
    noise = rng.integers(0, 256, size=(37, 3), dtype=np.uint8)
    return np.concatenate([combos, noise]).reshape(8, 8, 3)


def test_matrices_are_read_only():
    assert not RGB_TO_LMS.flags.writeable
    assert not LMS_TO_LALPHABETA.flags.writeable
    with pytest.raises(ValueError):
        RGB_TO_LMS[0, 0] = 1.0


def test_rotation_is_orthogonal():
    np.testing.assert_allclose(LMS_TO_LALPHABETA @ LMS_TO_LALPHABETA.T, np.eye(3), atol=1e-12)


def test_sensor_matrix_values():
    assert RGB_TO_LMS[0].tolist() == [0.3811, 0.5783, 0.0402]
    assert RGB_TO_LMS[1].tolist() == [0.1967, 0.7244, 0.0782]
    assert RGB_TO_LMS[2].tolist() == [0.0241, 0.1288, 0.8444]


@pytest.mark.parametrize('space', [LabColorSpace(), LogLMSColorSpace()])
def test_working_image_shape_and_dtype(space, make_image):
    img = make_image([100, 150, 200])
    working = space.to_working(img)
    assert working.shape == img.shape
    assert working.dtype == np.float32


def test_lalphabeta_round_trip(make_image):
    # Responses stay above the 0.07 floor for these values
    img = make_image([140, 140, 140], spread=80)
    space = LogLMSColorSpace()
    restored = space.from_working(space.to_working(img))
    assert restored.dtype == np.uint8
    assert np.abs(restored.astype(int) - img.astype(int)).max() <= 1


def test_lab_round_trip(make_image):
    img = make_image([120, 130, 140], spread=60)
    space = LabColorSpace()
    restored = space.from_working(space.to_working(img))
    assert np.abs(restored.astype(int) - img.astype(int)).max() <= 2


def test_lalphabeta_floor_applies_to_black():
    black = np.zeros((2, 2, 3), dtype=np.uint8)
    working = LogLMSColorSpace().to_working(black)
    expected_l = np.sqrt(3) * np.log10(0.07)
    np.testing.assert_allclose(working[:, :, 0], expected_l, rtol=1e-5)
    np.testing.assert_allclose(working[:, :, 1:], 0.0, atol=1e-6)


@pytest.mark.parametrize('space', [LabColorSpace(), LogLMSColorSpace()])
def test_gray_has_near_zero_chroma(space):
    gray = np.full((4, 4, 3), 128, dtype=np.uint8)
    working = space.to_working(gray)
    assert np.abs(working[:, :, 1:]).max() < 0.01


def test_lab_ranges():
    gamut = LabColorSpace().gamut
    assert gamut.lightness_center == 50.0
    assert gamut.lightness_half_range == 50.0
    assert gamut.chroma_limits == (127.0, 127.0)


def test_lalphabeta_gamut_is_derived_from_floor():
    gamut = LogLMSColorSpace().gamut
    floor = abs(np.log10(0.07))
    assert gamut.chroma_limits[0] == pytest.approx(2 * floor / np.sqrt(6))
    assert gamut.chroma_limits[1] == pytest.approx(floor / np.sqrt(2))
    assert gamut.lightness_center == pytest.approx(-1.0, abs=0.01)
    assert gamut.lightness_half_range == pytest.approx(1.0, abs=0.01)


@pytest.mark.parametrize('space', [LabColorSpace(), LogLMSColorSpace()])
def test_display_colors_lie_inside_gamut(space):
    working = space.to_working(all_corner_colors())
    chroma_scale, lightness_scale = gamut_excess(working, space.gamut)
    assert chroma_scale <= 1.0 + 1e-3
    assert lightness_scale <= 1.0 + 1e-3


def test_get_color_space():
    assert isinstance(get_color_space('lab'), LabColorSpace)
    assert isinstance(get_color_space('lalphabeta'), LogLMSColorSpace)
    space = LabColorSpace()
    assert get_color_space(space) is space
    with pytest.raises(ValueError, match='Unknown color space'):
        get_color_space('hsv')


@pytest.mark.parametrize('image', [
    np.zeros((4, 4, 3), dtype=np.float32),
    np.zeros((4, 4), dtype=np.uint8),
    np.zeros((4, 4, 4), dtype=np.uint8),
    np.zeros((0, 4, 3), dtype=np.uint8),
    [[0, 0, 0]],
])
def test_invalid_display_images(image):
    with pytest.raises(ValueError):
        validate_display_image(image)
