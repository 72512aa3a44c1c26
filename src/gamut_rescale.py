"""
Gamut Rescale - Bring a working-space image back inside its valid envelope
Scales values toward the centre of the range instead of clipping them
"""

import numpy as np


def gamut_excess(working, gamut):
    """
    Measure how far an image overflows its gamut

    Args:
        working: H x W x 3 working-space image
        gamut: GamutRange of the working space

    Returns:
        (chroma_scale, lightness_scale): values above 1 mean out of range
    """
    chroma_scale = 0.0
    for channel, limit in zip((1, 2), gamut.chroma_limits):
        plane = working[:, :, channel]
        chroma_scale = max(chroma_scale, float(plane.max()) / limit, -float(plane.min()) / limit)

    lightness = working[:, :, 0]
    center, half = gamut.lightness_center, gamut.lightness_half_range
    lightness_scale = max((float(lightness.max()) - center) / half,
                          -(float(lightness.min()) - center) / half)

    return chroma_scale, lightness_scale


def rescale_to_gamut(working, gamut, verbose=False):
    """
    Rescale an out-of-range image instead of letting it clip

    Both chromatic channels share one scale factor so hue direction is kept.
    Lightness is compressed toward the centre of its range.

    Args:
        working: H x W x 3 working-space image
        gamut: GamutRange of the working space
        verbose: Print the scale factors

    Returns:
        rescaled: New H x W x 3 float32 image
    """
    chroma_scale, lightness_scale = gamut_excess(working, gamut)
    result = working.astype(np.float32, copy=True)

    if verbose:
        print(f"  gamut scale: chroma={chroma_scale:.4f} lightness={lightness_scale:.4f}")

    if chroma_scale > 1.0:
        result[:, :, 1:] /= chroma_scale

    if lightness_scale > 1.0:
        center = gamut.lightness_center
        result[:, :, 0] = (result[:, :, 0] - center) / lightness_scale + center

    return result
