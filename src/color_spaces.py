"""
Color Spaces - Working-space conversions for statistical color transfer
Two interchangeable strategies: CIE L*a*b* (OpenCV) and Ruderman lαβ (log LMS)
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Tuple


def _read_only(matrix):
    matrix = np.array(matrix, dtype=np.float64)
    matrix.flags.writeable = False
    return matrix


# RGB to LMS (cone response) matrix from Reinhard et al.
RGB_TO_LMS = _read_only([
    [0.3811, 0.5783, 0.0402],
    [0.1967, 0.7244, 0.0782],
    [0.0241, 0.1288, 0.8444]
])

# log LMS to lαβ: orthogonal basis change
_i3, _i6, _i2 = 1 / np.sqrt(3), 1 / np.sqrt(6), 1 / np.sqrt(2)
LMS_TO_LALPHABETA = _read_only([
    [_i3,  _i3,  _i3],
    [_i6,  _i6, -2 * _i6],
    [_i2, -_i2,  0.0]
])

LMS_TO_RGB = _read_only(np.linalg.inv(RGB_TO_LMS))
LALPHABETA_TO_LMS = _read_only(np.linalg.inv(LMS_TO_LALPHABETA))

# Smallest cone response allowed before the log
LMS_FLOOR = 0.07


@dataclass(frozen=True)
class GamutRange:
    """Valid numeric envelope of a working space"""
    lightness_center: float
    lightness_half_range: float
    chroma_limits: Tuple[float, float]


def validate_display_image(image):
    """Raise ValueError unless image is an H x W x 3 uint8 array"""
    if not isinstance(image, np.ndarray):
        raise ValueError(f"Expected a numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an H x W x 3 image, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 image, got dtype {image.dtype}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError("Image is empty")


def to_uint8(image):
    """Scale a [0, 1] float image to uint8 with rounding and saturation"""
    return np.clip(np.rint(image * 255.0), 0, 255).astype(np.uint8)


def apply_matrix(image, matrix):
    """Apply a 3x3 matrix to every pixel of an H x W x 3 image"""
    h, w, _ = image.shape
    pixels = image.reshape(-1, 3) @ np.asarray(matrix).T
    return pixels.reshape(h, w, 3)


class ColorSpace:
    """
    Base class for working-space strategies

    Subclasses convert BGR uint8 images to a float32 H x W x 3 working image
    (plane 0 brightness, planes 1-2 chromatic) and back.
    """

    name = None
    channel_names = ('l', 'alpha', 'beta')

    def to_working(self, bgr_image):
        raise NotImplementedError

    def from_working(self, working):
        raise NotImplementedError

    @property
    def gamut(self) -> GamutRange:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class LabColorSpace(ColorSpace):
    """CIE L*a*b* as implemented by OpenCV (L in [0, 100], a/b in [-127, 127])"""

    name = 'lab'
    channel_names = ('L', 'a', 'b')

    def to_working(self, bgr_image):
        validate_display_image(bgr_image)
        bgr = bgr_image.astype(np.float32) / 255.0
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2Lab)

    def from_working(self, working):
        bgr = cv2.cvtColor(np.ascontiguousarray(working, dtype=np.float32),
                           cv2.COLOR_Lab2BGR)
        return to_uint8(bgr)

    @property
    def gamut(self):
        return GamutRange(lightness_center=50.0,
                          lightness_half_range=50.0,
                          chroma_limits=(127.0, 127.0))


class LogLMSColorSpace(ColorSpace):
    """
    Ruderman lαβ space: RGB -> LMS -> log10 -> orthogonal rotation

    Responses are floored at LMS_FLOOR before the log, so the space has a
    finite envelope that follows from the floor and from the response to white.
    """

    name = 'lalphabeta'

    def to_working(self, bgr_image):
        """
        Convert BGR to lαβ

        Args:
            bgr_image: BGR image (uint8)

        Returns:
            lab: Image in lαβ space (float32)
        """
        validate_display_image(bgr_image)
        rgb = cv2.cvtColor(bgr_image, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0

        lms = apply_matrix(rgb, RGB_TO_LMS)
        lms = np.maximum(lms, LMS_FLOOR)
        lms = np.log10(lms)

        return apply_matrix(lms, LMS_TO_LALPHABETA).astype(np.float32)

    def from_working(self, working):
        """
        Convert lαβ back to BGR

        Args:
            working: Image in lαβ space (float32)

        Returns:
            bgr: BGR image (uint8), saturated at 0 and 255
        """
        lms = apply_matrix(working.astype(np.float64), LALPHABETA_TO_LMS)
        lms = np.power(10.0, lms)
        rgb = apply_matrix(lms, LMS_TO_RGB)

        return cv2.cvtColor(to_uint8(rgb), cv2.COLOR_RGB2BGR)

    @property
    def gamut(self):
        log_floor = np.log10(LMS_FLOOR)
        log_white = np.log10(RGB_TO_LMS.sum(axis=1))

        lightness_min = 3 * log_floor * _i3
        lightness_max = log_white.sum() * _i3
        alpha_limit = 2 * abs(log_floor) * _i6
        beta_limit = abs(log_floor) * _i2

        return GamutRange(lightness_center=float((lightness_max + lightness_min) / 2),
                          lightness_half_range=float((lightness_max - lightness_min) / 2),
                          chroma_limits=(float(alpha_limit), float(beta_limit)))


COLOR_SPACES = {
    LabColorSpace.name: LabColorSpace,
    LogLMSColorSpace.name: LogLMSColorSpace,
}


def get_color_space(name):
    """Look up a color space strategy by name ('lab' or 'lalphabeta')"""
    if isinstance(name, ColorSpace):
        return name
    try:
        return COLOR_SPACES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown color space: {name!r} (choose from {', '.join(COLOR_SPACES)})"
        ) from None
