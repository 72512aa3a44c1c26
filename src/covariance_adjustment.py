"""
Covariance Adjustment - Match the cross-correlation of two chromatic channels

Let z1 and z2 be uncorrelated variables with zero mean and unit standard
deviation. Then

    a1 = sqrt((1+R)/2)*z1 + sqrt((1-R)/2)*z2
    a2 = sqrt((1+R)/2)*z1 - sqrt((1-R)/2)*z2

have zero mean, unit standard deviation and cross-correlation R. Inverting
this for the target correlation and re-applying it for the source correlation
collapses into a single symmetric mix

    c1' = W1*c1 + W2*c2
    c2' = W1*c2 + W2*c1

whose cross term W2 can be limited to a fraction of W1.
"""

import math
import numpy as np

from color_statistics import cross_correlation

# Correlations are kept strictly inside (-1, 1) so the weights stay finite
MAX_CORRELATION = 0.999


def clamp_correlation(value):
    return max(-MAX_CORRELATION, min(MAX_CORRELATION, value))


def compute_adjustment_weights(scorr, tcorr, limit):
    """
    Weights that move a standardized pair from tcorr toward scorr

    Args:
        scorr: Source cross-correlation
        tcorr: Target cross-correlation
        limit: Largest allowed |W2| / |W1| (0 = no change, 1 = full match)

    Returns:
        (W1, W2)
    """
    scorr = clamp_correlation(scorr)
    tcorr = clamp_correlation(tcorr)

    plus = 0.5 * math.sqrt((1 + scorr) / (1 + tcorr))
    minus = 0.5 * math.sqrt((1 - scorr) / (1 - tcorr))
    w1 = plus + minus
    w2 = plus - minus

    if abs(w2) > limit * abs(w1):
        w2 = math.copysign(limit * abs(w1), w2)
        # Restore unit variance of the mix applied to the target pair
        norm = 1.0 / math.sqrt(w1 * w1 + w2 * w2 + 2 * w1 * w2 * tcorr)
        w1 *= norm
        w2 *= norm

    return w1, w2


class CovarianceAdjuster:
    """
    Shift the target's chromatic cross-correlation toward the source's

    All input channels must already be standardized over their own image.
    """

    def __init__(self, verbose=False):
        self.verbose = verbose

    def adjust(self, target_c1, target_c2, source_c1, source_c2, limit):
        """
        Args:
            target_c1, target_c2: Standardized target chromatic channels
            source_c1, source_c2: Standardized source chromatic channels
            limit: Maximum adjustment (0 = none, 1 = full match)

        Returns:
            (new_c1, new_c2): Adjusted target channels (float32)
        """
        scorr = cross_correlation(source_c1, source_c2)
        return self.adjust_to_correlation(target_c1, target_c2, scorr, limit)

    def adjust_to_correlation(self, c1, c2, scorr, limit):
        """Same as adjust() with the source correlation already measured"""
        tcorr = cross_correlation(c1, c2)
        w1, w2 = compute_adjustment_weights(scorr, tcorr, limit)

        if self.verbose:
            print(f"  tcorr={tcorr:.4f} scorr={scorr:.4f} limit={limit:.3f} "
                  f"-> W1={w1:.4f} W2={w2:.4f}")

        new_c1 = (w1 * c1 + w2 * c2).astype(np.float32)
        new_c2 = (w1 * c2 + w2 * c1).astype(np.float32)
        return new_c1, new_c2
